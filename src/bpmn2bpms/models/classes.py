"""Business object class model read from PlantUML."""
from typing import Optional
from pydantic import BaseModel, Field


class ClassField(BaseModel):
    name: str
    type: Optional[str] = None


class ClassDef(BaseModel):
    name: str
    fields: list[ClassField] = Field(default_factory=list)


class Composition(BaseModel):
    owner: str
    part: str
    owner_multiplicity: Optional[str] = None
    part_multiplicity: Optional[str] = None


class ClassModel(BaseModel):
    classes: dict[str, ClassDef] = Field(default_factory=dict)
    enums: dict[str, list[str]] = Field(default_factory=dict)
    compositions: list[Composition] = Field(default_factory=list)

    def is_class(self, type_name: Optional[str]) -> bool:
        return bool(type_name) and type_name in self.classes

    def is_enum(self, type_name: Optional[str]) -> bool:
        return bool(type_name) and type_name in self.enums

    def fields_of(self, class_name: str) -> list[ClassField]:
        class_def = self.classes.get(class_name)
        return class_def.fields if class_def else []
