"""Decision table to Groovy script compiler.

The generated script evaluates rules in table order and returns the
output of the first rule whose conditions all hold (first-match hit
policy). When no rule fires it returns ``null``.
"""
import re
from typing import Optional
from jinja2 import Template
from pydantic import BaseModel

from ..models.decision import DecisionTable


NO_MATCH = "null"

HEADER_TEMPLATE = Template("""/*
 * Bonita Groovy script
{% if roots %}
 * Expected available variable{{ 's' if roots|length > 1 else '' }}: {{ roots|join(', ') }}
{% endif %}
{% for column in columns %}
 * - {{ column.expression }}{% if column.declared %} ({{ column.declared }}){% endif %}

{% endfor %}
{% if returns %}
 * Returns: {{ returns|join(' | ') }}
{% endif %}
 */

""", trim_blocks=True, keep_trailing_newline=True)

GROOVY_TYPES = {
    "string": "String",
    "integer": "Integer",
    "long": "Long",
    "boolean": "Boolean",
    "double": "Double",
    "number": "Double",
}

JAVA_TYPES = {
    "string": "java.lang.String",
    "integer": "java.lang.Integer",
    "long": "java.lang.Long",
    "boolean": "java.lang.Boolean",
    "double": "java.lang.Double",
    "number": "java.lang.Double",
}

RANGE_PATTERN = re.compile(r"^(-?\d+(?:\.\d+)?)\s*\.\.\s*(-?\d+(?:\.\d+)?)$")
IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_]")


class InputVariable(BaseModel):
    expression: str
    type_ref: Optional[str] = None
    name: str


def _normalized_type(type_ref: Optional[str]) -> str:
    return type_ref.strip().lower() if type_ref else ""


def groovy_type(type_ref: Optional[str]) -> Optional[str]:
    return GROOVY_TYPES.get(_normalized_type(type_ref))


def java_type(type_ref: Optional[str]) -> str:
    """Java class for a DMN typeRef, defaulting to String."""
    return JAVA_TYPES.get(_normalized_type(type_ref), "java.lang.String")


def root_variable(expression: Optional[str]) -> Optional[str]:
    """``request.amount`` to ``request``."""
    if not expression or not expression.strip():
        return None
    trimmed = expression.strip()
    dot = trimmed.find(".")
    return trimmed[:dot] if dot > 0 else trimmed


def output_field(output_variable: Optional[str]) -> Optional[str]:
    """``request.decision`` to ``decision``."""
    if not output_variable or not output_variable.strip():
        return None
    trimmed = output_variable.strip()
    dot = trimmed.rfind(".")
    return trimmed[dot + 1:] if dot > 0 else trimmed


def derive_variable_name(expression: str, used: set[str]) -> str:
    """Local name from the last path segment, suffixed on collision."""
    base = "value"
    if expression and expression.strip():
        base = IDENTIFIER_CHARS.sub("_", expression.strip().rsplit(".", 1)[-1]) or "value"
    candidate, counter = base, 1
    while candidate in used:
        candidate = f"{base}{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def to_safe_navigation(expression: str) -> str:
    return expression.strip().replace(".", "?.")


def normalize_literal(value: Optional[str], type_ref: Optional[str]) -> str:
    """Quote a literal for string and undeclared column types."""
    if value is None or not value.strip():
        return NO_MATCH
    trimmed = value.strip()
    if trimmed.startswith(('"', "'")) or trimmed == NO_MATCH:
        return trimmed
    if _normalized_type(type_ref) == "string" or groovy_type(type_ref) is None:
        return f'"{trimmed}"'
    return trimmed


def build_list_literal(values: str, type_ref: Optional[str]) -> str:
    items = [normalize_literal(v, type_ref) for v in values.split(",") if v.strip()]
    return "[" + ", ".join(items) + "]"


def _contains_operator(text: str) -> bool:
    return any(op in text for op in (">", "<", "="))


def build_rule_condition(variable: InputVariable, raw_test: Optional[str]) -> str:
    """Compile one input entry into a Groovy condition; wildcards become ``true``."""
    test = (raw_test or "").strip()
    if not test or test == "-":
        return "true"

    name = variable.name
    if test.startswith("not(") and test.endswith(")"):
        return f"!({build_list_literal(test[4:-1].strip(), variable.type_ref)}.contains({name}))"
    if "," in test and not _contains_operator(test):
        return f"{build_list_literal(test, variable.type_ref)}.contains({name})"
    if test.startswith("!="):
        return f"{name} {test}"
    if test.startswith("="):
        return f"{name} == {test[1:].strip()}"
    if test.startswith((">", "<")):
        return f"{name} {test}"
    if test.lower() in ("true", "false"):
        return f"{name} == {test.lower()}"

    match = RANGE_PATTERN.match(test)
    if match:
        low, high = match.groups()
        return f"({name} >= {low} && {name} <= {high})"

    return f"{name} == {normalize_literal(test, variable.type_ref)}"


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


class DecisionScriptCompiler:
    """Compile a DecisionTable into a Bonita Groovy script."""

    def input_variables(self, table: DecisionTable) -> list[InputVariable]:
        used: set[str] = set()
        variables = []
        for column in table.inputs:
            expression = (column.expression or "").strip()
            variables.append(InputVariable(
                expression=expression,
                type_ref=column.type_ref,
                name=derive_variable_name(expression, used),
            ))
        return variables

    def compile(self, table: DecisionTable) -> str:
        variables = self.input_variables(table)
        output_type = table.output.type_ref if table.output else None
        outputs = [normalize_literal(rule.output_entry, output_type) for rule in table.rules]

        script = [self._header(table, variables, outputs)]

        for variable in variables:
            if not variable.expression:
                continue
            safe = to_safe_navigation(variable.expression)
            declared = groovy_type(variable.type_ref)
            if declared is None:
                script.append(f"def {variable.name} = {safe}\n")
            else:
                script.append(f"{declared} {variable.name} = ({safe} as {declared})\n")
        script.append("\n")

        for rule, output in zip(table.rules, outputs):
            conditions = []
            for index, variable in enumerate(variables):
                # columns without an expression declare no variable
                if not variable.expression:
                    continue
                entry = rule.input_entries[index] if index < len(rule.input_entries) else ""
                condition = build_rule_condition(variable, entry)
                if condition != "true":
                    conditions.append(condition)
            condition = " && ".join(conditions) if conditions else "true"
            script.append(f"if ({condition}) {{\n    return {output}\n}}\n\n")

        script.append(f"return {NO_MATCH}\n")
        return "".join(script)

    def _header(self, table: DecisionTable, variables: list[InputVariable], outputs: list[str]) -> str:
        columns = [
            {"expression": variable.expression, "declared": groovy_type(variable.type_ref)}
            for variable in variables
            if variable.expression
        ]
        return HEADER_TEMPLATE.render(
            roots=_unique([root_variable(column.expression) for column in table.inputs]),
            columns=columns,
            returns=_unique([o for o in outputs if o != NO_MATCH]),
        )
