"""BPMN document parser producing the process model."""
import re
from typing import Optional
from lxml import etree

from ..errors import FormatError, StructureError
from ..models.process import (
    FLOW_NODE_TYPES,
    DataInputAssociation,
    DataObjectReference,
    DataOutputAssociation,
    FlowNode,
    FlowNodeType,
    Lane,
    LaneSet,
    ProcessDef,
    ProcessModel,
    SequenceFlow,
)
from ..xml_utils import BPMN_NS, XmlSource, localname, parse_xml, text_of


NS = {"bpmn": BPMN_NS}

ISO8601_DURATION = re.compile(
    r"^P(?:\d+Y)?(?:\d+M)?(?:\d+D)?(?:T(?:\d+H)?(?:\d+M)?(?:\d+(?:\.\d+)?S)?)?$|^P\d+W$"
)


def is_valid_duration(duration: str) -> bool:
    """Check an ISO-8601 duration; bare ``P``, bare ``PT`` and a trailing ``T`` are rejected."""
    if not duration or duration in ("P", "PT") or duration.endswith("T"):
        return False
    return ISO8601_DURATION.match(duration) is not None


def parse_data_object_label(label: Optional[str]) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """Split ``"var: Type\\n[state]"`` into (variable name, type name, state name)."""
    variable_name = type_name = state_name = None
    if not label or not label.strip():
        return variable_name, type_name, state_name

    if ":" in label:
        head, after_colon = label.split(":", 1)
        variable_name = head.strip()
        after_colon = after_colon.strip()
        if "\n" in after_colon:
            type_name = after_colon[:after_colon.index("\n")].strip()
        elif "[" in after_colon:
            type_name = after_colon[:after_colon.index("[")].strip()
        else:
            type_name = after_colon

    if "[" in label and "]" in label:
        start, end = label.index("[") + 1, label.index("]")
        if end > start:
            state_name = label[start:end].strip() or None

    return variable_name, type_name, state_name


class BPMNExtractor:
    """Parse BPMN 2.0 XML into a ProcessModel."""

    def parse(self, source: XmlSource) -> ProcessModel:
        """Parse a BPMN document (path, text or bytes)."""
        root = parse_xml(source).getroot()
        if localname(root) != "definitions":
            raise StructureError(f"Root element is not 'definitions' but '{localname(root)}'")

        processes = [
            self._parse_process(process_el)
            for process_el in root.xpath(".//bpmn:process", namespaces=NS)
        ]
        return ProcessModel(
            id=root.get("id"),
            target_namespace=root.get("targetNamespace"),
            has_collaboration=bool(root.xpath(".//bpmn:collaboration", namespaces=NS)),
            processes=processes,
        )

    def _parse_process(self, process_el: etree._Element) -> ProcessDef:
        process_id = process_el.get("id")
        if not process_id:
            raise StructureError("Process element has no id")

        lane_set_el = process_el.find("bpmn:laneSet", NS)
        return ProcessDef(
            id=process_id,
            name=process_el.get("name"),
            is_executable=(process_el.get("isExecutable") or "").lower() == "true",
            lane_set=self._parse_lane_set(lane_set_el) if lane_set_el is not None else None,
            nodes=self._parse_flow_nodes(process_el),
            data_objects=self._parse_data_objects(process_el),
            sequence_flows=self._parse_sequence_flows(process_el),
        )

    def _parse_lane_set(self, lane_set_el: etree._Element) -> LaneSet:
        lanes = []
        for lane_el in lane_set_el.xpath(".//bpmn:lane", namespaces=NS):
            refs = [text_of(ref) for ref in lane_el.findall("bpmn:flowNodeRef", NS)]
            lanes.append(Lane(
                id=lane_el.get("id"),
                name=lane_el.get("name"),
                flow_node_refs=[ref for ref in refs if ref],
            ))
        return LaneSet(id=lane_set_el.get("id"), lanes=lanes)

    def _parse_data_objects(self, process_el: etree._Element) -> dict[str, DataObjectReference]:
        data_objects = {}
        for ref_el in process_el.xpath(".//bpmn:dataObjectReference", namespaces=NS):
            ref_id = ref_el.get("id")
            if not ref_id:
                continue
            label = ref_el.get("name")
            variable_name, type_name, state_name = parse_data_object_label(label)
            data_objects[ref_id] = DataObjectReference(
                id=ref_id,
                name=label,
                data_object_ref=ref_el.get("dataObjectRef"),
                variable_name=variable_name,
                type_name=type_name,
                state_name=state_name,
            )
        return data_objects

    def _parse_flow_nodes(self, process_el: etree._Element) -> dict[str, FlowNode]:
        nodes = {}
        for node_type in FLOW_NODE_TYPES:
            for node_el in process_el.xpath(f".//bpmn:{node_type}", namespaces=NS):
                node_id = node_el.get("id")
                if not node_id:
                    continue
                flow_type = FlowNodeType(node_type)
                nodes[node_id] = FlowNode(
                    id=node_id,
                    type=flow_type,
                    name=node_el.get("name"),
                    data_inputs=self._parse_data_inputs(node_el),
                    data_outputs=self._parse_data_outputs(node_el),
                    timer_duration=self._parse_timer(node_el) if flow_type.is_event else None,
                )
        return nodes

    def _parse_data_inputs(self, node_el: etree._Element) -> list[DataInputAssociation]:
        return [
            DataInputAssociation(
                id=assoc.get("id") or "",
                source_ref=text_of(assoc.find("bpmn:sourceRef", NS)),
                target_ref=text_of(assoc.find("bpmn:targetRef", NS)),
            )
            for assoc in node_el.findall("bpmn:dataInputAssociation", NS)
        ]

    def _parse_data_outputs(self, node_el: etree._Element) -> list[DataOutputAssociation]:
        return [
            DataOutputAssociation(
                id=assoc.get("id") or "",
                target_ref=text_of(assoc.find("bpmn:targetRef", NS)),
            )
            for assoc in node_el.findall("bpmn:dataOutputAssociation", NS)
        ]

    def _parse_timer(self, event_el: etree._Element) -> Optional[str]:
        """Read timerEventDefinition/timeDuration; timeDate and timeCycle are ignored."""
        timer_el = event_el.find("bpmn:timerEventDefinition", NS)
        if timer_el is None:
            return None
        duration = text_of(timer_el.find("bpmn:timeDuration", NS))
        if not duration:
            return None
        if not is_valid_duration(duration):
            raise FormatError(
                f"Invalid ISO8601 duration format for timer event '{event_el.get('id')}': "
                f"'{duration}'. Expected format: P[n]Y[n]M[n]DT[n]H[n]M[n]S or P[n]W "
                f"(e.g., PT5M, P1D, PT1H30M)"
            )
        return duration

    def _parse_sequence_flows(self, process_el: etree._Element) -> dict[str, SequenceFlow]:
        flows = {}
        for flow_el in process_el.xpath(".//bpmn:sequenceFlow", namespaces=NS):
            flow_id = flow_el.get("id")
            if not flow_id:
                continue
            flows[flow_id] = SequenceFlow(
                id=flow_id,
                name=flow_el.get("name"),
                source_ref=flow_el.get("sourceRef"),
                target_ref=flow_el.get("targetRef"),
                expression=text_of(flow_el.find("bpmn:conditionExpression", NS)),
            )
        return flows
