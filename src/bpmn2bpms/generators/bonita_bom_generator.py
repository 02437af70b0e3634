"""Bonita business object model (bom.xml) generator."""
from typing import Optional
from lxml import etree

from ..compilers.contract import model_class_name
from ..models.classes import ClassDef, ClassField, ClassModel
from ..xml_utils import qname, serialize


BOM_NS = "http://documentation.bonitasoft.com/bdm-xml-schema/1.0"
BOM_FILE = "bom.xml"
FIELD_LENGTH = "255"

BOM_TYPES = {
    "string": "STRING",
    "boolean": "BOOLEAN",
    "bool": "BOOLEAN",
    "localdate": "LOCALDATE",
    "localdatetime": "LOCALDATETIME",
    "offsetdatetime": "OFFSETDATETIME",
    "double": "DOUBLE",
    "float": "FLOAT",
    "integer": "INTEGER",
    "int": "INTEGER",
    "long": "LONG",
    "text": "TEXT",
}

MANY_MULTIPLICITIES = {"*", "many", "0..*", "1..*", "0..n", "1..n"}


def bom(tag: str) -> str:
    return qname(BOM_NS, tag)


def bom_type(type_name: Optional[str], class_model: ClassModel) -> str:
    """BOM field type; enums and unknown types are stored as strings."""
    if not type_name or class_model.is_enum(type_name):
        return "STRING"
    return BOM_TYPES.get(type_name.lower(), "STRING")


class BonitaBomGenerator:
    """Generate a Bonita business data model from the PlantUML class model.

    Fields typed with another class become composition relation fields.
    A relation is a collection when the class model declares a composition
    between the two classes with a many-valued part multiplicity.
    """

    def file_name(self) -> str:
        return BOM_FILE

    def is_collection(self, class_model: ClassModel, owner: str, part: str) -> bool:
        for composition in class_model.compositions:
            if composition.owner == owner and composition.part == part:
                multiplicity = (composition.part_multiplicity or "").strip().lower()
                return multiplicity in MANY_MULTIPLICITIES
        return False

    def generate(self, class_model: ClassModel) -> str:
        root = etree.Element(bom("businessObjectModel"), nsmap={None: BOM_NS}, modelVersion="1.0")
        business_objects = etree.SubElement(root, bom("businessObjects"))
        for class_def in class_model.classes.values():
            business_objects.append(self._business_object(class_def, class_model))
        return serialize(etree.ElementTree(root), standalone=True)

    def _business_object(self, class_def: ClassDef, class_model: ClassModel) -> etree._Element:
        business_object = etree.Element(bom("businessObject"), qualifiedName=model_class_name(class_def.name))
        fields = etree.SubElement(business_object, bom("fields"))
        for field in class_def.fields:
            fields.append(self._field(class_def, field, class_model))
        etree.SubElement(business_object, bom("uniqueConstraints"))
        etree.SubElement(business_object, bom("queries"))
        etree.SubElement(business_object, bom("indexes"))
        return business_object

    def _field(self, class_def: ClassDef, field: ClassField, class_model: ClassModel) -> etree._Element:
        if class_model.is_class(field.type):
            collection = self.is_collection(class_model, class_def.name, field.type)
            return etree.Element(
                bom("relationField"),
                type="COMPOSITION",
                reference=model_class_name(field.type),
                fetchType="LAZY",
                name=field.name,
                nullable="true",
                collection="true" if collection else "false",
            )
        return etree.Element(
            bom("field"),
            type=bom_type(field.type, class_model),
            length=FIELD_LENGTH,
            name=field.name,
            nullable="true",
            collection="false",
        )
