"""Decision table models read from DMN documents."""
from typing import Optional
from pydantic import BaseModel, Field


class DecisionInput(BaseModel):
    expression: str = ""
    type_ref: Optional[str] = None


class DecisionOutput(BaseModel):
    name: Optional[str] = None
    type_ref: Optional[str] = None


class DecisionRule(BaseModel):
    input_entries: list[str] = Field(default_factory=list)
    output_entry: Optional[str] = None


class DecisionTable(BaseModel):
    """One DMN decision table; rule order is significant (first match wins)."""
    decision_id: Optional[str] = None
    inputs: list[DecisionInput] = Field(default_factory=list)
    output: Optional[DecisionOutput] = None
    rules: list[DecisionRule] = Field(default_factory=list)
