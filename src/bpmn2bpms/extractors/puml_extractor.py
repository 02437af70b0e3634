"""PlantUML class-diagram parser for the business object model.

Supports a small subset: ``class X {`` and ``enum E {`` blocks, fields
written as ``name`` or ``name: Type``, composition lines such as
``A "1" *-- "many" B`` and ``'`` comments.
"""
import re
from pathlib import Path
from typing import Union

from ..errors import FormatError
from ..models.classes import ClassDef, ClassField, ClassModel, Composition


CLASS_START = re.compile(r"^class\s+(\w+)\s*\{\s*$")
ENUM_START = re.compile(r"^enum\s+(\w+)\s*\{\s*$")
BLOCK_END = re.compile(r"^}\s*$")
COMPOSITION = re.compile(r'^(\w+)\s*(?:"(1|many)"\s*)?\*--\s*(?:"(1|many)"\s*)?(\w+)\s*$')
FIELD = re.compile(r"^([a-zA-Z_]\w*)(?:\s*:\s*([a-zA-Z_]\w*))?\s*$")

JAVA_RESERVED = {
    "abstract", "assert", "boolean", "break", "byte", "case", "catch", "char", "class",
    "const", "continue", "default", "do", "double", "else", "enum", "extends", "final",
    "finally", "float", "for", "goto", "if", "implements", "import", "instanceof", "int",
    "interface", "long", "native", "new", "package", "private", "protected", "public",
    "return", "short", "static", "strictfp", "super", "switch", "synchronized", "this",
    "throw", "throws", "transient", "try", "void", "volatile", "while", "true", "false", "null",
}


def _strip_comment(line: str) -> str:
    idx = line.find("'")
    return line[:idx] if idx >= 0 else line


def _first_token(line: str) -> str:
    parts = line.replace(",", "").replace(";", "").split()
    return parts[0] if parts else ""


class PlantUMLExtractor:
    """Parse a PlantUML class diagram into a ClassModel."""

    def parse_file(self, path: Union[str, Path]) -> ClassModel:
        return self.parse(Path(path).read_text(encoding="utf-8"))

    def parse(self, text: str) -> ClassModel:
        classes: dict[str, list[ClassField]] = {}
        enums: dict[str, list[str]] = {}
        compositions: list[Composition] = []
        current_class = None
        current_enum = None

        for raw in text.splitlines():
            line = _strip_comment(raw).strip()
            if not line or line.lower() in ("@startuml", "@enduml"):
                continue

            if current_class is not None:
                if BLOCK_END.match(line):
                    current_class = None
                    continue
                match = FIELD.match(line)
                if not match:
                    raise FormatError(f"Unsupported class field line: {line}")
                classes[current_class].append(ClassField(name=match.group(1), type=match.group(2)))
                continue

            if current_enum is not None:
                if BLOCK_END.match(line):
                    current_enum = None
                    continue
                value = _first_token(line)
                if value:
                    enums[current_enum].append(value)
                continue

            match = CLASS_START.match(line)
            if match:
                current_class = match.group(1)
                classes.setdefault(current_class, [])
                continue

            match = ENUM_START.match(line)
            if match:
                current_enum = match.group(1)
                enums.setdefault(current_enum, [])
                continue

            match = COMPOSITION.match(line)
            if match:
                compositions.append(Composition(
                    owner=match.group(1),
                    part=match.group(4),
                    owner_multiplicity=match.group(2) or "1",
                    part_multiplicity=match.group(3) or "1",
                ))
                continue

            raise FormatError(f"Unsupported PlantUML line: {line}")

        if current_class is not None:
            raise FormatError(f"Unclosed class block: {current_class}")
        if current_enum is not None:
            raise FormatError(f"Unclosed enum block: {current_enum}")

        return ClassModel(
            classes={name: ClassDef(name=name, fields=fields) for name, fields in classes.items()},
            enums=enums,
            compositions=compositions,
        )

    def validate_field_names(self, model: ClassModel) -> None:
        """Reject field names that are reserved words in the generated Java model."""
        for class_def in model.classes.values():
            for field in class_def.fields:
                if field.name in JAVA_RESERVED:
                    raise FormatError(
                        f"Field '{field.name}' in class '{class_def.name}' is a reserved keyword"
                    )
