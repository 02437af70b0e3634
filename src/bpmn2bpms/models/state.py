"""LangGraph state definition."""
from typing import Any, Optional, TypedDict

from .classes import ClassModel
from .organization import Organization
from .process import ProcessModel
from .process_config import ConfigFile


class CompileState(TypedDict, total=False):
    """State for the compile workflow."""

    # Input
    target: str
    model_dir: str
    output_dir: str

    # Parsed inputs
    bpmn_file_name: str
    bpmn_tree: Any  # lxml ElementTree of the source BPMN, the Camunda skeleton
    proc_tree: Any  # lxml ElementTree of the Bonita diagram skeleton
    process_model: Optional[ProcessModel]
    config: Optional[ConfigFile]
    organization: Optional[Organization]
    class_model: Optional[ClassModel]

    # Descriptor files: file name -> content
    dmn_files: dict[str, str]
    rest_files: dict[str, str]
    email_files: dict[str, str]
    email_templates: dict[str, str]
    form_index: dict[str, str]

    # Control flow
    current_step: str
    error: Optional[str]

    # Outputs: file name -> document text
    artifacts: dict[str, str]
