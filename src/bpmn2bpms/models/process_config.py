"""Process configuration (config.json) models."""
from typing import Any, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _vendor_field():
    return Field(
        default_factory=dict,
        validation_alias=AliasChoices("vendor_specific_attributes", "vendorSpecificAttributes"),
    )


class ConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GlobalVariable(ConfigModel):
    name: str
    value: Optional[str] = None


class LaneConfig(ConfigModel):
    name: str
    assignee: Optional[str] = None
    vendor_specific_attributes: dict[str, Any] = _vendor_field()


class NodeConfig(ConfigModel):
    name: str
    form_ref: Optional[str] = Field(default=None, alias="formRef")
    email_json_ref: Optional[str] = Field(default=None, alias="emailJsonRef")
    email_ftl_ref: Optional[str] = Field(default=None, alias="emailFtlRef")
    rest_call_ref: Optional[str] = Field(default=None, alias="restCallRef")
    dmn_ref: Optional[str] = Field(default=None, alias="dmnRef")
    dmn_result_variable: Optional[str] = Field(default=None, alias="dmnResultVariable")
    vendor_specific_attributes: dict[str, Any] = _vendor_field()


class ProcessConfig(ConfigModel):
    lanes: list[LaneConfig] = Field(default_factory=list)
    tasks: list[NodeConfig] = Field(default_factory=list)
    events: list[NodeConfig] = Field(default_factory=list)

    def find_task(self, name: Optional[str]) -> Optional[NodeConfig]:
        for task in self.tasks:
            if task.name == name:
                return task
        return None


class ProcessEntry(ConfigModel):
    id: str
    name: Optional[str] = None
    config: ProcessConfig = Field(default_factory=ProcessConfig)


class SmtpConfig(ConfigModel):
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None


class ConfigFile(ConfigModel):
    global_variables: list[GlobalVariable] = Field(default_factory=list, alias="globalVariables")
    processes: list[ProcessEntry] = Field(default_factory=list)
    smtp_config: Optional[SmtpConfig] = Field(default=None, alias="smtpConfig")

    def global_variable_map(self) -> dict[str, str]:
        return {v.name: v.value for v in self.global_variables if v.value is not None}

    def process_config(self, process_id: str) -> Optional[ProcessConfig]:
        for entry in self.processes:
            if entry.id == process_id:
                return entry.config
        return None
