"""Camunda 7 BPMN generator.

Projects the resolved process model onto the source BPMN document by
element id, writing Camunda extension attributes and elements.
"""
import copy
from typing import Optional
from lxml import etree

from ..config import Config
from ..models.process import FLOW_NODE_TYPES, FlowNode, FlowNodeType, ProcessModel
from ..xml_utils import (
    BPMN_NS,
    BPMNDI_NS,
    DC_NS,
    DI_NS,
    XSI_NS,
    qname,
    remove_children,
    serialize,
)
from .namespaces import ensure_namespaces


CAMUNDA_NS = "http://camunda.org/schema/1.0/bpmn"
MODELER_NS = "http://camunda.org/schema/modeler/1.0"

CAMUNDA_NSMAP = {
    "bpmn": BPMN_NS,
    "bpmndi": BPMNDI_NS,
    "camunda": CAMUNDA_NS,
    "dc": DC_NS,
    "di": DI_NS,
    "xsi": XSI_NS,
    "modeler": MODELER_NS,
}

NS = {"bpmn": BPMN_NS, "camunda": CAMUNDA_NS}

EMAIL_DELEGATE = "${sendEmailDelegate}"
REST_DELEGATE = "${restCallDelegate}"


def camunda(name: str) -> str:
    return qname(CAMUNDA_NS, name)


def bpmn(name: str) -> str:
    return qname(BPMN_NS, name)


def set_prefixed_attribute(element: etree._Element, name: str, value: str) -> bool:
    """Set ``prefix:local`` using the namespaces in scope; unknown prefixes are skipped."""
    if ":" not in name:
        element.set(name, value)
        return True
    prefix, local = name.split(":", 1)
    namespace = element.nsmap.get(prefix)
    if namespace is None:
        print(f"   ⚠️ Unknown namespace prefix '{prefix}' for attribute '{name}', skipped")
        return False
    element.set(qname(namespace, local), value)
    return True


class CamundaGenerator:
    """Write resolved IR values onto a Camunda BPMN document."""

    def generate(self, model: ProcessModel, skeleton: etree._ElementTree) -> etree._ElementTree:
        """Return a new Camunda-ready tree; the skeleton is not modified."""
        tree = copy.deepcopy(skeleton)
        root = tree.getroot()
        ensure_namespaces(root, CAMUNDA_NSMAP)

        self._update_lanes(root, model)
        self._update_user_tasks(root, model)
        self._update_vendor_attributes(root, model)
        self._update_delegates(root, model)
        self._update_business_rule_tasks(root, model)
        self._update_sequence_flows(root, model)
        self._update_definitions(root)
        return tree

    def _elements(self, root: etree._Element, local: str) -> list[etree._Element]:
        return root.xpath(f"//bpmn:{local}", namespaces=NS)

    def _update_lanes(self, root: etree._Element, model: ProcessModel) -> None:
        for lane_el in self._elements(root, "lane"):
            lane = model.find_lane(lane_el.get("id"))
            if lane is None:
                continue
            for name, value in lane.vendor_attributes.items():
                set_prefixed_attribute(lane_el, name, value)
            if lane.resolved_actor:
                lane_el.set(camunda("assignee"), lane.resolved_actor)

    def _update_user_tasks(self, root: etree._Element, model: ProcessModel) -> None:
        for task_el in self._elements(root, "userTask"):
            node = model.find_node(task_el.get("id"))
            if node is None or node.type != FlowNodeType.USER_TASK:
                continue
            if node.resolved_actor:
                task_el.set(camunda("assignee"), node.resolved_actor)
            if node.resolved_form_ref:
                task_el.set(camunda("formKey"), node.resolved_form_ref)

    def _update_vendor_attributes(self, root: etree._Element, model: ProcessModel) -> None:
        for node_type in FLOW_NODE_TYPES:
            for node_el in self._elements(root, node_type):
                node = model.find_node(node_el.get("id"))
                if node is None:
                    continue
                for name, value in node.vendor_attributes.items():
                    # formKey is owned by the form binding
                    if not name.startswith("camunda:") or name == "camunda:formKey":
                        continue
                    set_prefixed_attribute(node_el, name, value)

    def _update_delegates(self, root: etree._Element, model: ProcessModel) -> None:
        """Email and REST bindings share one ``camunda:inputOutput``; the REST delegate wins."""
        for task_el in self._elements(root, "serviceTask"):
            node = model.find_node(task_el.get("id"))
            if node is None or not (node.has_email or node.resolved_rest_call_file_name):
                continue
            remove_children(self._extension_elements(task_el), camunda("inputOutput"))
            if node.has_email:
                self._set_delegate(task_el, EMAIL_DELEGATE, {
                    "configJson": node.resolved_email_config_file_name,
                    "templateFtl": node.resolved_email_template_file_name,
                })
            if node.resolved_rest_call_file_name:
                self._set_delegate(task_el, REST_DELEGATE, {
                    "restCallConfig": node.resolved_rest_call_file_name,
                })

    def _set_delegate(self, task_el: etree._Element, expression: str, parameters: dict[str, Optional[str]]) -> None:
        task_el.set(camunda("delegateExpression"), expression)
        extension = self._extension_elements(task_el)
        input_output = extension.find(camunda("inputOutput"))
        if input_output is None:
            input_output = etree.SubElement(extension, camunda("inputOutput"))
        for name, value in parameters.items():
            if not value:
                continue
            parameter = etree.SubElement(input_output, camunda("inputParameter"), name=name)
            parameter.text = value

    def _extension_elements(self, task_el: etree._Element) -> etree._Element:
        extension = task_el.find(bpmn("extensionElements"))
        if extension is None:
            extension = etree.Element(bpmn("extensionElements"))
            task_el.insert(0, extension)
        return extension

    def _update_business_rule_tasks(self, root: etree._Element, model: ProcessModel) -> None:
        for task_el in self._elements(root, "businessRuleTask"):
            node: Optional[FlowNode] = model.find_node(task_el.get("id"))
            if node is None or not (node.dmn_ref or node.dmn_result_variable):
                continue
            if node.dmn_ref:
                task_el.set(camunda("decisionRef"), node.dmn_ref)
            if node.dmn_result_variable:
                task_el.set(camunda("resultVariable"), node.dmn_result_variable)
            task_el.set(camunda("mapDecisionResult"), "singleEntry")

    def _update_sequence_flows(self, root: etree._Element, model: ProcessModel) -> None:
        flows = {fid: flow for p in model.processes for fid, flow in p.sequence_flows.items()}
        for flow_el in self._elements(root, "sequenceFlow"):
            flow = flows.get(flow_el.get("id"))
            if flow is None or not (flow.resolved_expression or "").strip():
                continue
            condition = flow_el.find(bpmn("conditionExpression"))
            if condition is None:
                condition = etree.SubElement(flow_el, bpmn("conditionExpression"))
                condition.set(qname(XSI_NS, "type"), "bpmn:tFormalExpression")
            condition.text = flow.resolved_expression

    def _update_definitions(self, root: etree._Element) -> None:
        root.set("exporter", Config.CAMUNDA_EXPORTER)
        root.set("exporterVersion", Config.CAMUNDA_EXPORTER_VERSION)
        root.set(qname(MODELER_NS, "executionPlatform"), Config.CAMUNDA_PLATFORM)
        root.set(qname(MODELER_NS, "executionPlatformVersion"), Config.CAMUNDA_PLATFORM_VERSION)
        if root.get("targetNamespace") is None:
            root.set("targetNamespace", Config.CAMUNDA_TARGET_NAMESPACE)

        for process_el in self._elements(root, "process"):
            if process_el.get("isExecutable") is None:
                process_el.set("isExecutable", "true")
            if process_el.get(camunda("historyTimeToLive")) is None:
                process_el.set(camunda("historyTimeToLive"), Config.CAMUNDA_HISTORY_TTL)

    def write(self, tree: etree._ElementTree) -> str:
        """Serialize a generated tree."""
        return serialize(tree, standalone=False)
