"""Data models for bpmn2bpms."""
from .process import (
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
from .decision import DecisionInput, DecisionOutput, DecisionRule, DecisionTable
from .classes import ClassDef, ClassField, ClassModel, Composition
from .organization import Actor, Organization, Role
from .process_config import (
    ConfigFile,
    GlobalVariable,
    LaneConfig,
    NodeConfig,
    ProcessConfig,
    ProcessEntry,
    SmtpConfig,
)
from .state import CompileState

__all__ = [
    "FLOW_NODE_TYPES",
    "DataInputAssociation",
    "DataObjectReference",
    "DataOutputAssociation",
    "FlowNode",
    "FlowNodeType",
    "Lane",
    "LaneSet",
    "ProcessDef",
    "ProcessModel",
    "SequenceFlow",
    "DecisionInput",
    "DecisionOutput",
    "DecisionRule",
    "DecisionTable",
    "ClassDef",
    "ClassField",
    "ClassModel",
    "Composition",
    "Actor",
    "Organization",
    "Role",
    "ConfigFile",
    "GlobalVariable",
    "LaneConfig",
    "NodeConfig",
    "ProcessConfig",
    "ProcessEntry",
    "SmtpConfig",
    "CompileState",
]
