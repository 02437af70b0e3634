"""Process model (IR) built from a BPMN document.

Every model is frozen: enrichment passes never assign to a field, they
return copies made with ``model_copy(update=...)``.
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class FlowNodeType(str, Enum):
    USER_TASK = "userTask"
    SERVICE_TASK = "serviceTask"
    SCRIPT_TASK = "scriptTask"
    BUSINESS_RULE_TASK = "businessRuleTask"
    SEND_TASK = "sendTask"
    RECEIVE_TASK = "receiveTask"
    MANUAL_TASK = "manualTask"
    START_EVENT = "startEvent"
    END_EVENT = "endEvent"
    INTERMEDIATE_THROW_EVENT = "intermediateThrowEvent"
    INTERMEDIATE_CATCH_EVENT = "intermediateCatchEvent"
    BOUNDARY_EVENT = "boundaryEvent"
    EXCLUSIVE_GATEWAY = "exclusiveGateway"
    INCLUSIVE_GATEWAY = "inclusiveGateway"
    PARALLEL_GATEWAY = "parallelGateway"
    EVENT_BASED_GATEWAY = "eventBasedGateway"
    COMPLEX_GATEWAY = "complexGateway"

    @property
    def is_event(self) -> bool:
        return self.value.endswith("Event")

    @property
    def is_task(self) -> bool:
        return self.value.endswith("Task")


# Element names walked by the parser and the Camunda emitter, in document order
FLOW_NODE_TYPES: list[str] = [t.value for t in FlowNodeType]


class IRModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class DataInputAssociation(IRModel):
    id: str
    source_ref: Optional[str] = None
    target_ref: Optional[str] = None


class DataOutputAssociation(IRModel):
    id: str
    target_ref: Optional[str] = None


class FlowNode(IRModel):
    id: str
    type: FlowNodeType
    name: Optional[str] = None
    vendor_attributes: dict[str, str] = Field(default_factory=dict)
    data_inputs: list[DataInputAssociation] = Field(default_factory=list)
    data_outputs: list[DataOutputAssociation] = Field(default_factory=list)

    # Populated by enrichment passes
    resolved_actor: Optional[str] = None
    resolved_form_ref: Optional[str] = None
    resolved_form_output_variable_name: Optional[str] = None
    resolved_email_config_file_name: Optional[str] = None
    resolved_email_template_file_name: Optional[str] = None
    resolved_rest_call_file_name: Optional[str] = None
    dmn_ref: Optional[str] = None
    dmn_result_variable: Optional[str] = None

    # ISO-8601 duration from timerEventDefinition/timeDuration
    timer_duration: Optional[str] = None

    @property
    def has_email(self) -> bool:
        return bool(self.resolved_email_config_file_name or self.resolved_email_template_file_name)


class Lane(IRModel):
    id: str
    name: Optional[str] = None
    flow_node_refs: list[str] = Field(default_factory=list)
    vendor_attributes: dict[str, str] = Field(default_factory=dict)
    resolved_actor: Optional[str] = None


class LaneSet(IRModel):
    id: Optional[str] = None
    lanes: list[Lane] = Field(default_factory=list)


class DataObjectReference(IRModel):
    id: str
    name: Optional[str] = None  # raw label, "var: Type\n[state]"
    data_object_ref: Optional[str] = None
    variable_name: Optional[str] = None
    type_name: Optional[str] = None
    state_name: Optional[str] = None


class SequenceFlow(IRModel):
    id: str
    name: Optional[str] = None
    source_ref: Optional[str] = None
    target_ref: Optional[str] = None
    expression: Optional[str] = None
    resolved_expression: Optional[str] = None


class ProcessDef(IRModel):
    id: str
    name: Optional[str] = None
    is_executable: bool = False
    lane_set: Optional[LaneSet] = None
    nodes: dict[str, FlowNode] = Field(default_factory=dict)
    data_objects: dict[str, DataObjectReference] = Field(default_factory=dict)
    sequence_flows: dict[str, SequenceFlow] = Field(default_factory=dict)

    @property
    def lanes(self) -> list[Lane]:
        return self.lane_set.lanes if self.lane_set else []

    def nodes_of_type(self, node_type: FlowNodeType) -> list[FlowNode]:
        return [n for n in self.nodes.values() if n.type == node_type]

    def find_node_by_name(self, name: str, node_type: Optional[FlowNodeType] = None) -> Optional[FlowNode]:
        """First node whose name equals ``name`` (optionally of one type)."""
        for node in self.nodes.values():
            if node.name == name and (node_type is None or node.type == node_type):
                return node
        return None

    def output_data_object(self, node: FlowNode) -> Optional[DataObjectReference]:
        """Data object behind the node's first data output association."""
        if not node.data_outputs:
            return None
        target = node.data_outputs[0].target_ref
        return self.data_objects.get(target) if target else None

    def with_nodes(self, nodes: dict[str, FlowNode]) -> "ProcessDef":
        return self.model_copy(update={"nodes": nodes})

    def with_lanes(self, lanes: list[Lane]) -> "ProcessDef":
        lane_set = self.lane_set or LaneSet()
        return self.model_copy(update={"lane_set": lane_set.model_copy(update={"lanes": lanes})})


class ProcessModel(IRModel):
    id: Optional[str] = None
    target_namespace: Optional[str] = None
    has_collaboration: bool = False
    processes: list[ProcessDef] = Field(default_factory=list)

    def get_process(self, process_id: str) -> Optional[ProcessDef]:
        for process in self.processes:
            if process.id == process_id:
                return process
        return None

    def find_node(self, node_id: str) -> Optional[FlowNode]:
        for process in self.processes:
            if node_id in process.nodes:
                return process.nodes[node_id]
        return None

    def find_lane(self, lane_id: str) -> Optional[Lane]:
        for process in self.processes:
            for lane in process.lanes:
                if lane.id == lane_id:
                    return lane
        return None

    def all_nodes(self) -> list[FlowNode]:
        return [n for p in self.processes for n in p.nodes.values()]

    def all_data_objects(self) -> list[DataObjectReference]:
        return [d for p in self.processes for d in p.data_objects.values()]

    def with_processes(self, processes: list[ProcessDef]) -> "ProcessModel":
        return self.model_copy(update={"processes": processes})
