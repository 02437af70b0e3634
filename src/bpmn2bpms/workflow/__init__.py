"""LangGraph workflow for BPMN to BPMS compilation."""
from .graph import create_workflow, compile_workflow, CompileWorkflow

__all__ = ["create_workflow", "compile_workflow", "CompileWorkflow"]
