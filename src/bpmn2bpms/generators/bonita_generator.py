"""Bonita .proc generator.

Projects the resolved process model onto a Bonita diagram skeleton. The
diagram does not keep BPMN ids, so flow nodes, lanes and sequence flows
are matched by display name (trimmed, case-folded, first match wins).
Every generated child is removed before it is written again, so running
the generator on its own output does not accumulate duplicates.
"""
import copy
import json
import posixpath
import re
from typing import Optional
from lxml import etree

from ..compilers.contract import Contract, ContractInput, ContractSynthesizer, TEXT, model_class_name
from ..compilers.decision_script import DecisionScriptCompiler, java_type, output_field, root_variable
from ..errors import FormatError, StructureError
from ..extractors.dmn_extractor import DMNExtractor
from ..models.classes import ClassModel
from ..models.process import FlowNodeType, ProcessModel
from ..models.process_config import ConfigFile, NodeConfig
from ..resolvers.enrichment import file_path_from_ref, normalize_dmn_result_variable, strip_extension
from ..resolvers.organization import initiator_lane
from ..xml_utils import remove_children, serialize
from .bonita_connectors import build_email_connector, build_rest_connector, resolve_descriptor_file
from .bonita_xml import (
    BONITA_NSMAP,
    XMI_ID,
    XMI_TYPE,
    BusinessObjectInfo,
    add_business_object_ref,
    add_element,
    add_operator,
    collect_business_objects,
    elements_by_name,
    find_business_object_type_id,
    find_pool,
    normalize_name,
    place_before_anchor,
    xmi_type,
)
from .namespaces import ensure_namespaces


USER_TASK_KINDS = {"process:Task", "process:UserTask", "process:HumanTask"}
SERVICE_TASK_KINDS = {"process:ServiceTask"}

DURATION_PARTS = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def duration_to_millis(duration: str) -> int:
    """Fixed-length ISO-8601 duration in milliseconds.

    Years and months have no fixed length and are rejected.
    """
    match = DURATION_PARTS.match(duration.strip()) if duration else None
    if match is None or duration.strip() in ("P", "PT"):
        raise FormatError(f"Invalid ISO-8601 duration: '{duration}'")
    parts = match.groupdict()
    if parts["years"] or parts["months"]:
        raise FormatError(f"Duration '{duration}' uses years or months and cannot be converted to milliseconds")
    seconds = (
        int(parts["weeks"] or 0) * 7 * 86400
        + int(parts["days"] or 0) * 86400
        + int(parts["hours"] or 0) * 3600
        + int(parts["minutes"] or 0) * 60
        + float(parts["seconds"] or 0)
    )
    return int(round(seconds * 1000))


def format_millis(milliseconds: int) -> str:
    """``HH:MM:SS``."""
    seconds = milliseconds // 1000
    return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"


def to_form_id(value: Optional[str]) -> str:
    """``loan-request_form`` to ``loanRequestForm``."""
    parts = re.sub(r"[^A-Za-z0-9]+", " ", value or "").split()
    if not parts:
        return "form"
    head, rest = parts[0], parts[1:]
    return head[:1].lower() + head[1:] + "".join(p[:1].upper() + p[1:] for p in rest)


def resolve_dmn_file_key(dmn_ref: Optional[str], dmn_files: dict[str, str]) -> Optional[str]:
    """Find a decision file by reference: exact name, then with ``.dmn``, then ignoring case."""
    if not dmn_ref or not dmn_ref.strip():
        return None
    path = file_path_from_ref(dmn_ref.strip()).replace("\\", "/")
    file_name = posixpath.basename(path)
    if file_name in dmn_files:
        return file_name
    if not file_name.lower().endswith(".dmn") and f"{file_name}.dmn" in dmn_files:
        return f"{file_name}.dmn"
    for key in dmn_files:
        if key.lower() in (file_name.lower(), f"{file_name}.dmn".lower()):
            return key
    return None


def parse_fragment(fragment: str) -> list[etree._Element]:
    """Parse a vendor XML fragment with the Bonita prefixes in scope."""
    declarations = " ".join(f'xmlns:{prefix}="{uri}"' for prefix, uri in BONITA_NSMAP.items())
    wrapper = etree.fromstring(f"<wrapper {declarations}>{fragment}</wrapper>".encode("utf-8"))
    return [child for child in wrapper if isinstance(child.tag, str)]


class BonitaGenerator:
    """Write resolved IR values, contracts, scripts and connectors onto a Bonita diagram."""

    def __init__(
        self,
        class_model: Optional[ClassModel] = None,
        config: Optional[ConfigFile] = None,
        dmn_files: Optional[dict[str, str]] = None,
        rest_files: Optional[dict[str, str]] = None,
        email_files: Optional[dict[str, str]] = None,
        email_templates: Optional[dict[str, str]] = None,
        form_index: Optional[dict[str, str]] = None,
    ):
        self.class_model = class_model or ClassModel()
        self.config = config or ConfigFile()
        self.dmn_files = dmn_files or {}
        self.rest_files = rest_files or {}
        self.email_files = email_files or {}
        self.email_templates = email_templates or {}
        self.form_index = form_index or {}
        self.synthesizer = ContractSynthesizer(self.class_model)
        self.script_compiler = DecisionScriptCompiler()
        self.dmn_extractor = DMNExtractor()

    def generate(self, model: ProcessModel, skeleton: etree._ElementTree) -> etree._ElementTree:
        """Return a new Bonita tree; the skeleton is not modified."""
        tree = copy.deepcopy(skeleton)
        root = tree.getroot()
        ensure_namespaces(root, BONITA_NSMAP)

        actors = self.add_actors(root)
        self.link_lanes(root, actors)
        self.set_initiator(root, model)
        self.add_data_objects(root, model)
        self.add_timer_conditions(root, model)
        self.update_sequence_flows(root, model)
        self.add_contracts(root, model)
        self.add_form_mappings(root)
        self.add_connectors(root)
        self.add_vendor_fragments(root, model)
        self.add_business_rule_operations(root, model)
        self.rewrite_send_tasks(root)
        return tree

    # Actors

    def add_actors(self, root: etree._Element) -> dict[str, str]:
        """One actor per distinct lane name; returns lane name -> actor id."""
        pool = find_pool(root)
        if pool is None:
            raise StructureError("No Pool element found in proc document")

        existing = {
            actor.get("name"): actor.get(XMI_ID)
            for actor in pool.findall("actors")
            if xmi_type(actor) == "process:Actor" and actor.get("name")
        }
        actors: dict[str, str] = {}
        for lane in list(root.iter("elements")):
            name = lane.get("name")
            if xmi_type(lane) != "process:Lane" or not name or name in actors:
                continue
            if name in existing:
                actors[name] = existing[name]
            else:
                actors[name] = add_element(pool, "actors", "process:Actor", name=name).get(XMI_ID)
        return actors

    def link_lanes(self, root: etree._Element, actors: dict[str, str]) -> None:
        for lane in root.iter("elements"):
            if xmi_type(lane) == "process:Lane" and lane.get("name") in actors:
                lane.set("actor", actors[lane.get("name")])

    def set_initiator(self, root: etree._Element, model: ProcessModel) -> None:
        """Flag the actor of the first lane that references a start event."""
        lanes = elements_by_name(root, {"process:Lane"})
        actor_id = None
        for process in model.processes:
            lane = initiator_lane(process)
            lane_el = lanes.get(normalize_name(lane.name)) if lane is not None else None
            if lane_el is not None and lane_el.get("actor"):
                actor_id = lane_el.get("actor")
                break
        if actor_id is None:
            return
        for actor in root.iter("actors"):
            if xmi_type(actor) == "process:Actor" and actor.get(XMI_ID) == actor_id:
                actor.set("initiator", "true")
                return

    # Business data

    def add_data_objects(self, root: etree._Element, model: ProcessModel) -> None:
        """Declare one business object variable per data object, skipping existing names."""
        variables: dict[str, str] = {}
        for data_object in model.all_data_objects():
            name = (data_object.variable_name or "").strip()
            type_name = (data_object.type_name or "").strip()
            if name and type_name:
                variables.setdefault(name, type_name)
        if not variables:
            return

        pool = find_pool(root)
        type_id = find_business_object_type_id(root)
        if type_id is None:
            print("   ⚠️ No BusinessObjectType in proc document, data objects skipped")
            return

        existing = {data.get("name") for data in pool.iter("data") if data.get("name")}
        for name, type_name in variables.items():
            if name in existing:
                continue
            data = add_element(pool, "data", "process:BusinessObjectData", name=name,
                               dataType=type_id, className=model_class_name(type_name))
            add_element(data, "defaultValue", "expression:Expression", name="", content="",
                        interpreter="GROOVY", type="TYPE_READ_ONLY_SCRIPT", returnType="java.lang.Object")

    # Timers and flows

    def add_timer_conditions(self, root: etree._Element, model: ProcessModel) -> None:
        durations = {
            normalize_name(node.name): node.timer_duration
            for node in model.all_nodes()
            if node.timer_duration and node.name
        }
        if not durations:
            return
        for element in list(root.iter(tag=etree.Element)):
            duration = durations.get(normalize_name(element.get("name")))
            if "TimerEvent" not in xmi_type(element) or duration is None:
                continue
            millis = duration_to_millis(duration)
            remove_children(element, "condition")
            add_element(element, "condition", "expression:Expression", name=format_millis(millis),
                        content=f"{millis}L", interpreter="GROOVY", type="TYPE_READ_ONLY_SCRIPT",
                        returnType="java.lang.Long")

    def update_sequence_flows(self, root: etree._Element, model: ProcessModel) -> None:
        """Write Groovy conditions and the business objects they reference."""
        flows = {}
        for process in model.processes:
            for flow in process.sequence_flows.values():
                if flow.name and (flow.resolved_expression or "").strip():
                    flows.setdefault(normalize_name(flow.name), flow)
        if not flows:
            return

        business_objects = collect_business_objects(root)
        for connection in list(root.iter("connections")):
            if xmi_type(connection) != "process:SequenceFlow":
                continue
            flow = flows.get(normalize_name(connection.get("name")))
            if flow is None:
                continue
            expression = flow.resolved_expression
            condition = connection.find("condition")
            if condition is None:
                condition = add_element(connection, "condition", "expression:Expression")
            condition.set("name", expression)
            condition.set("content", expression)
            condition.set("interpreter", "GROOVY")
            condition.set("type", "TYPE_READ_ONLY_SCRIPT")
            condition.set("returnType", "java.lang.Boolean")
            condition.set("returnTypeFixed", "true")
            condition.set("automaticDependencies", "false")

            remove_children(condition, "referencedElements")
            for name, info in business_objects.items():
                if re.search(rf"\b{re.escape(name)}\b", expression):
                    add_business_object_ref(condition, name, info.data_type, info.class_name)

    # Contracts

    def add_contracts(self, root: etree._Element, model: ProcessModel) -> None:
        """Contract inputs and setter operations for user tasks writing a business object."""
        tasks = elements_by_name(root, USER_TASK_KINDS)
        type_id = find_business_object_type_id(root)
        if not tasks or type_id is None:
            return

        for process in model.processes:
            for node in process.nodes_of_type(FlowNodeType.USER_TASK):
                task_el = tasks.get(normalize_name(node.name))
                data_object = process.output_data_object(node)
                if task_el is None or data_object is None:
                    continue
                variable = (data_object.variable_name or "").strip()
                class_name = (data_object.type_name or "").strip()
                contract = self.synthesizer.synthesize(variable, class_name)
                if contract is None:
                    continue
                self._write_contract(task_el, contract, class_name, type_id)

    def _write_contract(self, task_el: etree._Element, contract: Contract, class_name: str, type_id: str) -> None:
        contract_el = task_el.find("contract")
        if contract_el is None:
            contract_el = add_element(task_el, "contract", "process:Contract")
        elif contract_el.get(XMI_TYPE) is None:
            contract_el.set(XMI_TYPE, "process:Contract")
        for child in list(contract_el):
            contract_el.remove(child)
        self._write_input(contract_el, contract.root)

        remove_children(task_el, "operations")
        root_class = model_class_name(class_name)
        for operation in contract.operations:
            operation_el = add_element(task_el, "operations", "expression:Operation")
            left = add_element(operation_el, "leftOperand", "expression:Expression",
                               name=operation.variable_name, content=operation.variable_name,
                               type="TYPE_VARIABLE", returnType=root_class)
            add_business_object_ref(left, operation.variable_name, type_id, root_class)

            right = add_element(operation_el, "rightOperand", "expression:Expression",
                                name=f"{operation.input_name}.{operation.field_name}",
                                interpreter="GROOVY", type="TYPE_READ_ONLY_SCRIPT",
                                content=operation.content, returnType=operation.return_type)
            add_element(right, "referencedElements", "process:ContractInput",
                        name=operation.input_name, type="COMPLEX", createMode="false")
            if operation.composition_type:
                for _ in range(2):
                    add_business_object_ref(right, operation.variable_name, type_id, root_class)

            add_operator(operation_el, operation.field_name, operation.input_type)
            place_before_anchor(task_el, operation_el, fallback=contract_el)

    def _write_input(self, parent: etree._Element, contract_input: ContractInput) -> None:
        input_el = add_element(parent, "inputs", "process:ContractInput", name=contract_input.name)
        if contract_input.type != TEXT:
            input_el.set("type", contract_input.type)
        input_el.set("createMode", "false")
        if contract_input.data_reference:
            input_el.set("dataReference", contract_input.data_reference)
        for nested in contract_input.inputs:
            self._write_input(input_el, nested)

    # Forms

    def add_form_mappings(self, root: etree._Element) -> None:
        """Map configured user task forms to their deployed form uuids."""
        uuids = {form_id: uuid for uuid, form_id in self.form_index.items() if isinstance(form_id, str)}
        if not uuids:
            return
        tasks = elements_by_name(root, USER_TASK_KINDS)

        for task in self._configured_tasks():
            if not task.form_ref or not task.form_ref.strip():
                continue
            path = file_path_from_ref(task.form_ref.strip())
            if path == task.form_ref.strip():
                continue
            form_id = to_form_id(strip_extension(posixpath.basename(path)))
            uuid = uuids.get(form_id)
            if not uuid:
                print(f"   ⚠️ No form UUID found for form '{form_id}'")
                continue
            task_el = tasks.get(normalize_name(task.name))
            if task_el is None:
                continue

            remove_children(task_el, "formMapping")
            mapping = add_element(task_el, "formMapping", "process:FormMapping")
            add_element(mapping, "targetForm", "expression:Expression", name=form_id, content=uuid,
                        type="FORM_REFERENCE_TYPE", returnTypeFixed="true")
            contract_el = task_el.find("contract")
            if contract_el is not None:
                contract_el.addprevious(mapping)

    # Connectors

    def add_connectors(self, root: etree._Element) -> None:
        """REST connectors, then email connectors, on configured service tasks."""
        tasks = elements_by_name(root, SERVICE_TASK_KINDS)
        if not tasks:
            return
        business_objects = collect_business_objects(root)

        configured = [
            (task, tasks.get(normalize_name(task.name)))
            for task in self._configured_tasks()
            if task.name and task.name.strip() and (task.rest_call_ref or task.email_json_ref)
        ]
        for _, task_el in configured:
            if task_el is not None:
                remove_children(task_el, "connectors")

        for task, task_el in configured:
            if task_el is None:
                continue
            if task.rest_call_ref and task.rest_call_ref.strip():
                self._add_rest_connector(task, task_el, business_objects)
            if task.email_json_ref and task.email_json_ref.strip():
                self._add_email_connector(task, task_el, business_objects)

    def _read_descriptor(self, files: dict[str, str], file_name: Optional[str]) -> Optional[dict]:
        if not file_name or not (files.get(file_name) or "").strip():
            return None
        try:
            data = json.loads(files[file_name])
        except json.JSONDecodeError as e:
            print(f"   ⚠️ Failed to parse connector config '{file_name}': {e}")
            return None
        return data if isinstance(data, dict) else None

    def _add_rest_connector(self, task: NodeConfig, task_el: etree._Element,
                            business_objects: dict[str, BusinessObjectInfo]) -> None:
        file_name = resolve_descriptor_file(task.rest_call_ref, task.name, self.rest_files, "rest")
        descriptor = self._read_descriptor(self.rest_files, file_name)
        if descriptor is None:
            return
        connector = build_rest_connector(task_el, descriptor, task.name, business_objects)
        if connector is not None:
            place_before_anchor(task_el, connector)

    def _add_email_connector(self, task: NodeConfig, task_el: etree._Element,
                             business_objects: dict[str, BusinessObjectInfo]) -> None:
        if self.config.smtp_config is None:
            return
        file_name = resolve_descriptor_file(task.email_json_ref, task.name, self.email_files, "email")
        descriptor = self._read_descriptor(self.email_files, file_name)
        if descriptor is None:
            return
        connector = build_email_connector(task_el, descriptor, task, self.config.smtp_config,
                                          self.email_templates, business_objects)
        place_before_anchor(task_el, connector)

    # Vendor attributes

    def add_vendor_fragments(self, root: etree._Element, model: ProcessModel) -> None:
        """Append the XML fragments of ``bonita`` vendor attributes to matching elements.

        Children of an element that share a tag with a fragment child are replaced.
        A fragment that does not parse is reported and skipped.
        """
        elements = elements_by_name(root)
        for node in model.all_nodes():
            element = elements.get(normalize_name(node.name))
            if element is None:
                continue
            for key, value in node.vendor_attributes.items():
                if not key.startswith("bonita:") or not (value or "").strip():
                    continue
                try:
                    children = parse_fragment(value)
                except etree.XMLSyntaxError as e:
                    print(f"   ⚠️ Failed to append Bonita vendor XML fragment '{key}': {e}")
                    continue
                for tag in {child.tag for child in children}:
                    remove_children(element, tag)
                for child in children:
                    element.append(copy.deepcopy(child))

    # Business rules

    def add_business_rule_operations(self, root: etree._Element, model: ProcessModel) -> None:
        """Inject the compiled decision script as a setter operation on business rule tasks."""
        if not self.dmn_files:
            return
        elements = elements_by_name(root)
        business_objects = collect_business_objects(root)

        for node in model.all_nodes():
            if node.type != FlowNodeType.BUSINESS_RULE_TASK or not (node.name or "").strip():
                continue
            file_key = resolve_dmn_file_key(node.dmn_ref, self.dmn_files)
            if file_key is None or not self.dmn_files[file_key].strip():
                continue
            try:
                table = self.dmn_extractor.parse(self.dmn_files[file_key])
            except StructureError as e:
                print(f"   ⚠️ Failed to read decision table '{file_key}': {e}")
                continue
            if table is None or not table.inputs or not table.rules:
                continue

            output_variable = normalize_dmn_result_variable(node.dmn_result_variable)
            if not output_variable and table.output is not None:
                output_variable = (table.output.name or "").strip() or None
            if not output_variable:
                continue

            root_name = root_variable(output_variable)
            if not root_name:
                root_name = next(
                    (root_variable(column.expression) for column in table.inputs if root_variable(column.expression)),
                    None,
                )
            info = business_objects.get(root_name) if root_name else None
            task_el = elements.get(normalize_name(node.name))
            if info is None or task_el is None:
                continue

            output_type = java_type(table.output.type_ref if table.output else None)
            script = self.script_compiler.compile(table)

            remove_children(task_el, "operations")
            operation = add_element(task_el, "operations", "expression:Operation")
            left = add_element(operation, "leftOperand", "expression:Expression", name=root_name,
                               content=root_name, type="TYPE_VARIABLE", returnType=info.class_name)
            add_business_object_ref(left, root_name, info.data_type, info.class_name)
            right = add_element(operation, "rightOperand", "expression:Expression", name="newScript()",
                                content=script, interpreter="GROOVY", type="TYPE_READ_ONLY_SCRIPT",
                                returnType=output_type)
            add_business_object_ref(right, root_name, info.data_type, info.class_name)
            add_operator(operation, output_field(output_variable), output_type)
            place_before_anchor(task_el, operation)

    # Send tasks

    def rewrite_send_tasks(self, root: etree._Element) -> None:
        """Send tasks are written as plain activities."""
        for element in root.iter("elements"):
            if xmi_type(element) != "process:SendTask":
                continue
            element.set(XMI_TYPE, "process:Activity")
            for name in ("overrideActorsOfTheLane", "priority"):
                element.attrib.pop(name, None)

    def _configured_tasks(self) -> list[NodeConfig]:
        return [task for entry in self.config.processes for task in entry.config.tasks]

    def write(self, tree: etree._ElementTree) -> str:
        """Serialize a generated tree without a standalone declaration."""
        ensure_namespaces(tree.getroot(), BONITA_NSMAP)
        return serialize(tree)
