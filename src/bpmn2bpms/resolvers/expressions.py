"""Expression resolution.

Authored expressions mark variable paths with tildes, for example
``${~request.amount~ > ~globalVariables.limit~}``. Resolution runs in two
stages: global-variable substitution, then a target flatten that
produces ``SequenceFlow.resolved_expression``.
"""
import json
import re
from enum import Enum
from typing import Any, Optional

from ..models.process import ProcessModel


MARKER_PATTERN = re.compile(r"~([^~]+)~")
PRE_RUNTIME_PATTERN = re.compile(r"\$\{~([^}]+)~\}")
FULL_PRE_RUNTIME_PATTERN = re.compile(r"^\$\{~([^}]+)~\}$")
INTERPOLATION_PATTERN = re.compile(r"\$\{([^}]+)\}")
WRAPPER_PATTERN = re.compile(r"^\$\{(.*)\}$", re.DOTALL)

GLOBAL_PREFIX = "globalVariables."


class Dialect(str, Enum):
    CAMUNDA = "camunda"
    BONITA = "bonita"


def _global_value(path: str, variables: dict[str, str]) -> Optional[str]:
    path = path.strip()
    if not path.startswith(GLOBAL_PREFIX):
        return None
    return variables.get(path[len(GLOBAL_PREFIX):])


def substitute_globals(text: Optional[str], variables: dict[str, str]) -> Optional[str]:
    """Replace ``~globalVariables.x~`` markers with known values; leave the rest untouched."""
    if not text or not variables:
        return text

    def replace(match: re.Match) -> str:
        value = _global_value(match.group(1), variables)
        return value if value is not None else match.group(0)

    return MARKER_PATTERN.sub(replace, text)


def substitute_globals_in_file(text: Optional[str], variables: dict[str, str]) -> Optional[str]:
    """Replace whole ``${~globalVariables.x~}`` placeholders inside descriptor files."""
    if not text or not variables:
        return text

    def replace(match: re.Match) -> str:
        value = _global_value(match.group(1), variables)
        return value if value is not None else match.group(0)

    return PRE_RUNTIME_PATTERN.sub(replace, text)


def flatten_camunda(text: Optional[str]) -> Optional[str]:
    """Keep ``${...}``, drop markers and turn dots inside them into underscores."""
    if text is None or not text.strip():
        return text
    return MARKER_PATTERN.sub(lambda m: m.group(1).replace(".", "_"), text)


def flatten_bonita(text: Optional[str]) -> Optional[str]:
    """Drop markers and the ``${...}`` wrapper, keeping dotted navigation."""
    if text is None or not text.strip():
        return text
    unmarked = MARKER_PATTERN.sub(r"\1", text)
    match = WRAPPER_PATTERN.match(unmarked.strip())
    return match.group(1).strip() if match else unmarked.strip()


FLATTENERS = {
    Dialect.CAMUNDA: flatten_camunda,
    Dialect.BONITA: flatten_bonita,
}


def resolve_global_variables(model: ProcessModel, variables: dict[str, str]) -> ProcessModel:
    """Substitute global variables into every sequence-flow expression."""
    processes = []
    for process in model.processes:
        flows = {
            flow_id: flow.model_copy(update={"expression": substitute_globals(flow.expression, variables)})
            for flow_id, flow in process.sequence_flows.items()
        }
        processes.append(process.model_copy(update={"sequence_flows": flows}))
    return model.with_processes(processes)


def resolve_sequence_flows(model: ProcessModel, dialect: Dialect) -> ProcessModel:
    """Populate ``resolved_expression`` from the raw expression for one dialect."""
    flatten = FLATTENERS[Dialect(dialect)]
    processes = []
    for process in model.processes:
        flows = {
            flow_id: flow.model_copy(update={"resolved_expression": flatten(flow.expression)})
            for flow_id, flow in process.sequence_flows.items()
        }
        processes.append(process.model_copy(update={"sequence_flows": flows}))
    return model.with_processes(processes)


def to_camunda_variable(value: Optional[str]) -> Optional[str]:
    """``${~a.b~}`` or ``~a.b~`` to ``a_b``."""
    if not value:
        return value
    stripped = value.strip()
    match = WRAPPER_PATTERN.match(stripped)
    if match:
        stripped = match.group(1).strip()
    stripped = MARKER_PATTERN.sub(r"\1", stripped).strip("~")
    return stripped.replace(".", "_")


# Descriptor (REST / email JSON) transforms

def resolve_camunda_descriptor_text(text: Optional[str]) -> Optional[str]:
    """``${~a.b~}`` to ``${a_b}``."""
    if not text or "${~" not in text:
        return text
    return PRE_RUNTIME_PATTERN.sub(lambda m: "${" + m.group(1).replace(".", "_") + "}", text)


def resolve_bonita_descriptor_text(text: Optional[str]) -> Optional[str]:
    """A whole-value ``${~x~}`` becomes the bare expression; embedded ones become ``${x}``."""
    if not text or "${~" not in text:
        return text
    match = FULL_PRE_RUNTIME_PATTERN.match(text)
    if match:
        return match.group(1).strip()
    return PRE_RUNTIME_PATTERN.sub(lambda m: "${" + m.group(1) + "}", text)


def _parse_json_body(text: str) -> Optional[Any]:
    trimmed = text.strip()
    if not trimmed.startswith(("{", "[")):
        return None
    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        return None


def resolve_descriptor(node: Any, dialect: Dialect) -> Any:
    """Resolve expressions in a parsed JSON descriptor for one dialect."""
    dialect = Dialect(dialect)
    if isinstance(node, str):
        if dialect == Dialect.CAMUNDA:
            return resolve_camunda_descriptor_text(node)
        return resolve_bonita_descriptor_text(node)
    if isinstance(node, list):
        return [resolve_descriptor(item, dialect) for item in node]
    if isinstance(node, dict):
        resolved = {}
        for key, value in node.items():
            if dialect == Dialect.BONITA and key == "body" and isinstance(value, str):
                parsed = _parse_json_body(value)
                if parsed is not None:
                    value = parsed
            resolved[key] = resolve_descriptor(value, dialect)
        return resolved
    return node


def resolve_descriptor_files(files: dict[str, str], dialect: Dialect) -> dict[str, str]:
    """Resolve every JSON descriptor; unreadable files are reported and dropped."""
    resolved = {}
    for file_name, content in files.items():
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            print(f"   ⚠️ Error processing JSON content for '{file_name}': {e}")
            continue
        resolved[file_name] = json.dumps(resolve_descriptor(data, dialect), indent=2, ensure_ascii=False)
    return resolved


def substitute_globals_in_files(files: dict[str, str], variables: dict[str, str]) -> dict[str, str]:
    return {name: substitute_globals_in_file(content, variables) for name, content in files.items()}
