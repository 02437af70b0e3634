"""Compilers for decision scripts and task contracts."""
from .decision_script import DecisionScriptCompiler
from .contract import Contract, ContractInput, ContractSynthesizer, FieldOperation

__all__ = ["DecisionScriptCompiler", "Contract", "ContractInput", "ContractSynthesizer", "FieldOperation"]
