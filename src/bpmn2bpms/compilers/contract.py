"""Contract and operation synthesis from the business object class model.

Given a root variable and its class, builds the nested contract input
tree a user task exposes and the setter operations that copy submitted
input values back onto the business object.
"""
from typing import Optional
from pydantic import BaseModel, Field

from ..config import Config
from ..models.classes import ClassField, ClassModel


CONTRACT_TYPES = {
    "string": "TEXT",
    "boolean": "BOOLEAN",
    "bool": "BOOLEAN",
    "localdate": "LOCALDATE",
    "date": "LOCALDATE",
    "localdatetime": "LOCALDATETIME",
    "datetime": "LOCALDATETIME",
    "offsetdatetime": "OFFSETDATETIME",
    "double": "DECIMAL",
    "float": "DECIMAL",
    "integer": "INTEGER",
    "int": "INTEGER",
    "long": "TEXT",
    "text": "TEXT",
}

RETURN_TYPES = {
    "boolean": "java.lang.Boolean",
    "bool": "java.lang.Boolean",
    "localdate": "java.time.LocalDate",
    "date": "java.time.LocalDate",
    "localdatetime": "java.time.LocalDateTime",
    "datetime": "java.time.LocalDateTime",
    "offsetdatetime": "java.time.OffsetDateTime",
    "double": "java.lang.Double",
    "float": "java.lang.Float",
    "integer": "java.lang.Integer",
    "int": "java.lang.Integer",
    "long": "java.lang.Long",
}

COMPLEX = "COMPLEX"
TEXT = "TEXT"


class ContractInput(BaseModel):
    name: str
    type: str = TEXT
    data_reference: Optional[str] = None
    inputs: list["ContractInput"] = Field(default_factory=list)


class FieldOperation(BaseModel):
    """Setter operation ``variable.set<Field>(<content>)``."""
    variable_name: str
    class_name: str
    field_name: str
    input_name: str
    content: str
    return_type: Optional[str] = None
    input_type: str
    composition_type: Optional[str] = None

    @property
    def setter(self) -> str:
        return "set" + capitalize(self.field_name)


class Contract(BaseModel):
    root: ContractInput
    operations: list[FieldOperation] = Field(default_factory=list)


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:] if value else value


def lower_camel(value: str) -> str:
    return value[:1].lower() + value[1:] if value else value


def model_class_name(class_name: str) -> str:
    return f"{Config.BONITA_MODEL_PACKAGE}.{class_name}"


class ContractSynthesizer:
    """Build contracts and operations for one class model."""

    def __init__(self, class_model: ClassModel):
        self.class_model = class_model

    # Type mapping

    def contract_type(self, field_type: Optional[str]) -> str:
        if not field_type or self.class_model.is_enum(field_type):
            return TEXT
        return CONTRACT_TYPES.get(field_type.lower(), TEXT)

    def return_type(self, field_type: Optional[str]) -> Optional[str]:
        if not field_type or self.class_model.is_enum(field_type):
            return None
        return RETURN_TYPES.get(field_type.lower())

    def operator_input_type(self, field_type: Optional[str]) -> str:
        if self.class_model.is_class(field_type):
            return model_class_name(field_type)
        return self.return_type(field_type) or "java.lang.String"

    # Contract inputs

    def build_inputs(self, class_name: str, visited: frozenset = frozenset()) -> list[ContractInput]:
        """Contract inputs for a class; a class already on this branch is not expanded again."""
        if not class_name or class_name in visited:
            return []
        branch = visited | {class_name}
        inputs = []
        for field in self._fields(class_name):
            if self.class_model.is_class(field.type):
                inputs.append(ContractInput(
                    name=field.name.strip(),
                    type=COMPLEX,
                    inputs=self.build_inputs(field.type, branch),
                ))
            else:
                inputs.append(ContractInput(name=field.name.strip(), type=self.contract_type(field.type)))
        return inputs

    # Operations

    def primitive_content(self, access_path: str, field_type: Optional[str]) -> str:
        """Safe read of ``access_path`` with the coercion its type needs."""
        safe = access_path.replace(".", "?.")
        if not field_type or self.class_model.is_enum(field_type):
            return safe
        kind = field_type.lower()
        if kind == "long":
            return f"{safe}?.trim() ? {access_path}.toLong() : null"
        if kind == "float":
            return f"{safe}?.toFloat()"
        return safe

    def composition_script(self, input_name: str, field: ClassField, parent_variable: str) -> str:
        """Reuse the existing nested object or construct one, then copy its fields."""
        field_name = field.name.strip()
        var_name = lower_camel(field.type) + "Var"
        script = (
            f"if (!{input_name}?.{field_name}) {{\n"
            f"\treturn null\n"
            f"}}\n"
            f"def {var_name} = {parent_variable}.{field_name} ?: new {model_class_name(field.type)}()\n"
        )
        for nested in self._fields(field.type):
            nested_name = nested.name.strip()
            path = f"{input_name}.{field_name}.{nested_name}"
            if self.class_model.is_class(nested.type):
                value = path.replace(".", "?.")
            else:
                value = self.primitive_content(path, nested.type)
            script += f"{var_name}.{nested_name} = {value}\n"
        return script + f"return {var_name}"

    def build_operations(self, variable_name: str, class_name: str) -> list[FieldOperation]:
        input_name = variable_name + "Input"
        operations = []
        for field in self._fields(class_name):
            field_name = field.name.strip()
            is_composition = self.class_model.is_class(field.type)
            if is_composition:
                content = self.composition_script(input_name, field, variable_name)
                return_type = model_class_name(field.type)
            else:
                content = self.primitive_content(f"{input_name}.{field_name}", field.type)
                return_type = self.return_type(field.type)
            operations.append(FieldOperation(
                variable_name=variable_name,
                class_name=class_name,
                field_name=field_name,
                input_name=input_name,
                content=content,
                return_type=return_type,
                input_type=self.operator_input_type(field.type),
                composition_type=field.type if is_composition else None,
            ))
        return operations

    def synthesize(self, variable_name: str, class_name: str) -> Optional[Contract]:
        """Contract and operations for ``variable_name`` of type ``class_name``."""
        if not variable_name or not self.class_model.is_class(class_name):
            return None
        root = ContractInput(
            name=variable_name + "Input",
            type=COMPLEX,
            data_reference=variable_name,
            inputs=self.build_inputs(class_name),
        )
        return Contract(root=root, operations=self.build_operations(variable_name, class_name))

    def _fields(self, class_name: Optional[str]) -> list[ClassField]:
        if not class_name:
            return []
        return [f for f in self.class_model.fields_of(class_name) if f.name and f.name.strip()]
