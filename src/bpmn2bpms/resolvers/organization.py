"""Organization binding: actor references, lane actors and initiators."""
import re
from typing import Optional

from ..models.organization import Organization
from ..models.process import FlowNodeType, Lane, ProcessDef, ProcessModel
from ..models.process_config import ConfigFile


ORGANIZATION_REF = re.compile(r"^\$\{ref:organization\.([^}]+)\}$")


def resolve_reference(value: Optional[str], organization: Optional[Organization]) -> Optional[str]:
    """Resolve ``${ref:organization.<name>}`` to an actor name.

    The name is matched against actor names and ids, first match wins.
    Anything else, including an unresolved reference, is returned as is.
    """
    if not value or organization is None:
        return value
    match = ORGANIZATION_REF.match(value.strip())
    if not match:
        return value
    wanted = match.group(1).strip()
    for actor in organization.all_actors():
        if wanted in (actor.name, actor.id):
            return actor.name or actor.id
    return value


def bind_lanes(model: ProcessModel, config: ConfigFile, organization: Optional[Organization]) -> ProcessModel:
    """Set each lane's resolved actor from the lane configuration with the same name."""
    processes = []
    for process in model.processes:
        process_config = config.process_config(process.id)
        if process_config is None or process.lane_set is None:
            processes.append(process)
            continue
        lanes = []
        for lane in process.lanes:
            lane_config = next((c for c in process_config.lanes if c.name == lane.name), None)
            if lane_config is not None and lane_config.assignee:
                lane = lane.model_copy(update={
                    "resolved_actor": resolve_reference(lane_config.assignee, organization),
                })
            lanes.append(lane)
        processes.append(process.with_lanes(lanes))
    return model.with_processes(processes)


def propagate_lane_actors(model: ProcessModel) -> ProcessModel:
    """Give every user task listed in a lane that lane's resolved actor."""
    processes = []
    for process in model.processes:
        nodes = dict(process.nodes)
        for lane in process.lanes:
            if not lane.resolved_actor:
                continue
            for ref in lane.flow_node_refs:
                node = nodes.get(ref)
                if node is not None and node.type == FlowNodeType.USER_TASK:
                    nodes[ref] = node.model_copy(update={"resolved_actor": lane.resolved_actor})
        processes.append(process.with_nodes(nodes))
    return model.with_processes(processes)


def initiator_lane(process: ProcessDef) -> Optional[Lane]:
    """First lane that directly references a start event."""
    for lane in process.lanes:
        for ref in lane.flow_node_refs:
            node = process.nodes.get(ref)
            if node is not None and node.type == FlowNodeType.START_EVENT:
                return lane
    return None
