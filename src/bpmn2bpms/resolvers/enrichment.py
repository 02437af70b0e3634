"""Configuration-driven enrichment passes.

Each pass takes a ProcessModel and the process configuration and returns
a new ProcessModel. Processes are matched by id, lanes and flow nodes by
name.
"""
import posixpath
import re
from typing import Any, Callable, Optional

from ..models.process import FlowNode, FlowNodeType, ProcessDef, ProcessModel
from ..models.process_config import ConfigFile, NodeConfig, ProcessConfig
from .expressions import WRAPPER_PATTERN, to_camunda_variable


FILE_REF = re.compile(r"^\$\{file:([^}]+)\}$")

KeyPredicate = Callable[[str], bool]


def file_path_from_ref(ref: Optional[str]) -> Optional[str]:
    """``${file:rest/call.json}`` to ``rest/call.json``; other values are returned as is."""
    if not ref:
        return ref
    match = FILE_REF.match(ref.strip())
    return match.group(1).strip() if match else ref


def extract_file_name_from_ref(ref: Optional[str]) -> Optional[str]:
    """``${file:rest/call.json}`` to ``call.json``; other values are returned as is."""
    if not ref:
        return ref
    match = FILE_REF.match(ref.strip())
    if not match:
        return ref
    return posixpath.basename(match.group(1).strip())


def strip_extension(file_name: Optional[str]) -> Optional[str]:
    if not file_name:
        return file_name
    root, _ = posixpath.splitext(file_name)
    return root


def form_key_from_ref(form_ref: Optional[str]) -> Optional[str]:
    """``${file:forms/x.json}`` to ``embedded:app:forms/x.html``."""
    path = file_path_from_ref(form_ref)
    if not path or path == form_ref:
        return None
    return f"embedded:app:{strip_extension(path)}.html"


def merge_attributes(
    existing: dict[str, str],
    extra: Optional[dict[str, Any]],
    accept: Optional[KeyPredicate] = None,
) -> dict[str, str]:
    """Merge vendor attributes; values are stringified and keys filtered by ``accept``."""
    merged = dict(existing)
    for key, value in (extra or {}).items():
        if value is None or (accept is not None and not accept(key)):
            continue
        merged[key] = str(value)
    return merged


def _map_processes(
    model: ProcessModel,
    config: ConfigFile,
    apply: Callable[[ProcessDef, ProcessConfig], ProcessDef],
) -> ProcessModel:
    processes = []
    for process in model.processes:
        process_config = config.process_config(process.id)
        processes.append(apply(process, process_config) if process_config is not None else process)
    return model.with_processes(processes)


def _update_named_nodes(
    process: ProcessDef,
    node_configs: list[NodeConfig],
    update: Callable[[ProcessDef, FlowNode, NodeConfig], Optional[dict]],
    node_type: Optional[FlowNodeType] = None,
) -> ProcessDef:
    nodes = dict(process.nodes)
    for node_config in node_configs:
        for node_id, node in nodes.items():
            if node.name != node_config.name or (node_type is not None and node.type != node_type):
                continue
            changes = update(process, node, node_config)
            if changes:
                nodes[node_id] = node.model_copy(update=changes)
    return process.with_nodes(nodes)


def bind_forms(model: ProcessModel, config: ConfigFile) -> ProcessModel:
    """Set form key and form output variable on configured user tasks."""

    def update(process: ProcessDef, node: FlowNode, node_config: NodeConfig) -> Optional[dict]:
        form_key = form_key_from_ref(node_config.form_ref)
        if not form_key:
            return None
        data_object = process.output_data_object(node)
        return {
            "resolved_form_ref": form_key,
            "resolved_form_output_variable_name": data_object.variable_name if data_object else None,
        }

    return _map_processes(model, config, lambda p, c: _update_named_nodes(
        p, c.tasks, update, FlowNodeType.USER_TASK))


def bind_email_files(model: ProcessModel, config: ConfigFile) -> ProcessModel:
    """Set email descriptor and template file names."""

    def update(process: ProcessDef, node: FlowNode, node_config: NodeConfig) -> Optional[dict]:
        if not node_config.email_json_ref and not node_config.email_ftl_ref:
            return None
        return {
            "resolved_email_config_file_name": extract_file_name_from_ref(node_config.email_json_ref),
            "resolved_email_template_file_name": extract_file_name_from_ref(node_config.email_ftl_ref),
        }

    return _map_processes(model, config, lambda p, c: _update_named_nodes(p, c.tasks, update))


def bind_rest_files(model: ProcessModel, config: ConfigFile) -> ProcessModel:
    """Set the REST call descriptor file name."""

    def update(process: ProcessDef, node: FlowNode, node_config: NodeConfig) -> Optional[dict]:
        if not node_config.rest_call_ref:
            return None
        return {"resolved_rest_call_file_name": extract_file_name_from_ref(node_config.rest_call_ref)}

    return _map_processes(model, config, lambda p, c: _update_named_nodes(p, c.tasks, update))


def bind_decisions(model: ProcessModel, config: ConfigFile) -> ProcessModel:
    """Copy decision reference and result variable onto business rule tasks."""

    def update(process: ProcessDef, node: FlowNode, node_config: NodeConfig) -> Optional[dict]:
        if not node_config.dmn_ref and not node_config.dmn_result_variable:
            return None
        return {"dmn_ref": node_config.dmn_ref, "dmn_result_variable": node_config.dmn_result_variable}

    return _map_processes(model, config, lambda p, c: _update_named_nodes(
        p, c.tasks, update, FlowNodeType.BUSINESS_RULE_TASK))


def vendor_prefix(target: str) -> KeyPredicate:
    """Accept keys written as ``<target>:<attribute>``."""
    prefix = f"{target}:"
    return lambda key: key.startswith(prefix)


def merge_vendor_attributes(
    model: ProcessModel,
    config: ConfigFile,
    accept: Optional[KeyPredicate] = None,
) -> ProcessModel:
    """Copy vendor attributes from lane, task and event configuration."""

    def update(process: ProcessDef, node: FlowNode, node_config: NodeConfig) -> Optional[dict]:
        if not node_config.vendor_specific_attributes:
            return None
        return {"vendor_attributes": merge_attributes(
            node.vendor_attributes, node_config.vendor_specific_attributes, accept)}

    def apply(process: ProcessDef, process_config: ProcessConfig) -> ProcessDef:
        if process.lane_set is not None:
            lanes = []
            for lane in process.lanes:
                lane_config = next((c for c in process_config.lanes if c.name == lane.name), None)
                if lane_config is not None and lane_config.vendor_specific_attributes:
                    lane = lane.model_copy(update={"vendor_attributes": merge_attributes(
                        lane.vendor_attributes, lane_config.vendor_specific_attributes, accept)})
                lanes.append(lane)
            process = process.with_lanes(lanes)
        process = _update_named_nodes(process, process_config.tasks, update)
        return _update_named_nodes(process, process_config.events, update)

    return _map_processes(model, config, apply)


def normalize_dmn_ref(dmn_ref: Optional[str]) -> Optional[str]:
    """``${file:dmn/decide.dmn}`` to ``decide``."""
    if not dmn_ref:
        return dmn_ref
    return strip_extension(posixpath.basename(file_path_from_ref(dmn_ref)))


def normalize_camunda_business_rules(model: ProcessModel) -> ProcessModel:
    """Turn decision references into Camunda decision keys and result variables."""
    processes = []
    for process in model.processes:
        nodes = dict(process.nodes)
        for node_id, node in nodes.items():
            if node.type != FlowNodeType.BUSINESS_RULE_TASK:
                continue
            nodes[node_id] = node.model_copy(update={
                "dmn_ref": normalize_dmn_ref(node.dmn_ref),
                "dmn_result_variable": to_camunda_variable(node.dmn_result_variable),
            })
        processes.append(process.with_nodes(nodes))
    return model.with_processes(processes)


def normalize_dmn_result_variable(value: Optional[str]) -> Optional[str]:
    """``${~request.decision~}`` to ``request.decision``."""
    if not value or not value.strip():
        return None
    text = value.strip()
    match = WRAPPER_PATTERN.match(text)
    if match:
        text = match.group(1).strip()
    marker = re.search(r"~([^~]+)~", text)
    if marker:
        return marker.group(1).strip()
    return text.strip("~").strip() or None
