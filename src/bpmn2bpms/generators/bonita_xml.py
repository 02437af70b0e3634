"""Element builders for Bonita ``.proc`` documents.

Bonita diagrams are XMI: structural children are unqualified elements
(``elements``, ``connections``, ``data``...) whose kind is carried by an
``xmi:type`` attribute, and every element has a generated ``xmi:id``.
"""
import random
import re
import string
from typing import Optional
from lxml import etree
from pydantic import BaseModel

from ..xml_utils import qname


XMI_NS = "http://www.omg.org/XMI"
PROCESS_NS = "http://www.bonitasoft.org/ns/bpm/process"
EXPRESSION_NS = "http://www.bonitasoft.org/ns/bpm/expression"
CONNECTOR_CONFIGURATION_NS = "http://www.bonitasoft.org/model/connector/configuration"

BONITA_NSMAP = {
    "xmi": XMI_NS,
    "process": PROCESS_NS,
    "expression": EXPRESSION_NS,
    "connectorconfiguration": CONNECTOR_CONFIGURATION_NS,
}

XMI_TYPE = qname(XMI_NS, "type")
XMI_ID = qname(XMI_NS, "id")

ID_CHARS = string.ascii_letters + string.digits

# Children a generated connector or operation is placed in front of, by priority
INSERTION_ANCHORS = [
    "loopCondition",
    "loopMaximum",
    "cardinalityExpression",
    "iteratorExpression",
    "completionCondition",
    "BoundaryIntermediateEvents",
    "formMapping",
    "contract",
    "expectedDuration",
]

INTERPOLATION = re.compile(r"\$\{([^}]+)\}")
ROOT_IDENTIFIER = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)")


class BusinessObjectInfo(BaseModel):
    """A pool-level business object variable."""
    class_name: str
    data_type: str


def generate_id() -> str:
    """Bonita style id, ``_`` followed by 22 alphanumerics."""
    return "_" + "".join(random.choices(ID_CHARS, k=22))


def xmi_type(element: etree._Element) -> str:
    return element.get(XMI_TYPE) or ""


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def add_element(parent: etree._Element, tag: str, kind: str, **attributes) -> etree._Element:
    """Append ``<tag xmi:type=kind xmi:id=...>`` with the given attributes.

    Attributes whose value is None are left out.
    """
    element = etree.SubElement(parent, tag)
    element.set(XMI_TYPE, kind)
    element.set(XMI_ID, generate_id())
    for name, value in attributes.items():
        if value is not None:
            element.set(name, value)
    return element


def elements_by_name(root: etree._Element, kinds: Optional[set[str]] = None) -> dict[str, etree._Element]:
    """``elements`` nodes keyed by normalized name; the first one in document order wins."""
    found: dict[str, etree._Element] = {}
    for element in root.iter("elements"):
        if kinds is not None and xmi_type(element) not in kinds:
            continue
        key = normalize_name(element.get("name"))
        if key:
            found.setdefault(key, element)
    return found


def find_pool(root: etree._Element) -> Optional[etree._Element]:
    for element in root.iter("elements"):
        if xmi_type(element) == "process:Pool":
            return element
    return None


def find_business_object_type_id(root: etree._Element) -> Optional[str]:
    for datatype in root.iter("datatypes"):
        if xmi_type(datatype) == "process:BusinessObjectType" and datatype.get(XMI_ID):
            return datatype.get(XMI_ID)
    return None


def collect_business_objects(root: etree._Element) -> dict[str, BusinessObjectInfo]:
    """Business object data declared in the document, keyed by variable name."""
    found: dict[str, BusinessObjectInfo] = {}
    for data in root.iter("data"):
        if xmi_type(data) != "process:BusinessObjectData":
            continue
        name = (data.get("name") or "").strip()
        data_type = (data.get("dataType") or "").strip()
        class_name = (data.get("className") or "").strip()
        if name and data_type and class_name:
            found.setdefault(name, BusinessObjectInfo(class_name=class_name, data_type=data_type))
    return found


def find_anchor(task: etree._Element) -> Optional[etree._Element]:
    for tag in INSERTION_ANCHORS:
        anchor = task.find(tag)
        if anchor is not None:
            return anchor
    return None


def place_before_anchor(task: etree._Element, element: etree._Element,
                        fallback: Optional[etree._Element] = None) -> None:
    """Move ``element`` in front of the first insertion anchor (or ``fallback``) of ``task``."""
    anchor = find_anchor(task)
    if anchor is None and fallback is not None and fallback.getparent() is task:
        anchor = fallback
    if anchor is not None and anchor is not element:
        anchor.addprevious(element)


# Expressions

def add_business_object_ref(parent: etree._Element, name: str, data_type: Optional[str],
                            class_name: Optional[str]) -> etree._Element:
    return add_element(parent, "referencedElements", "process:BusinessObjectData",
                       name=name, dataType=data_type, className=class_name)


def add_simple_expression(parent: etree._Element, value: str, tag: str = "expression") -> etree._Element:
    return add_element(parent, tag, "expression:Expression",
                       name=value, content=value, returnTypeFixed="true")


def add_empty_expression(parent: etree._Element, tag: str = "expression") -> etree._Element:
    return add_element(parent, tag, "expression:Expression", content="", returnTypeFixed="true")


def add_boolean_expression(parent: etree._Element, value: bool, tag: str = "expression") -> etree._Element:
    text = "true" if value else "false"
    return add_element(parent, tag, "expression:Expression", name=text, content=text,
                       returnType="java.lang.Boolean", returnTypeFixed="true")


def add_integer_expression(parent: etree._Element, value: Optional[int], tag: str = "expression") -> etree._Element:
    text = str(value) if value is not None else None
    return add_element(parent, tag, "expression:Expression", name=text, content=text or "",
                       returnType="java.lang.Integer", returnTypeFixed="true")


def add_table_expression(parent: etree._Element, tag: str = "expression") -> etree._Element:
    return add_element(parent, tag, "expression:TableExpression")


def add_list_expression(parent: etree._Element, tag: str = "expression") -> etree._Element:
    return add_element(parent, tag, "expression:ListExpression")


def add_pattern_expression(parent: etree._Element, value: str,
                           business_objects: dict[str, BusinessObjectInfo],
                           tag: str = "expression") -> etree._Element:
    """Pattern expression with one reference chain per ``${...}`` rooted at a business object."""
    expression = add_element(parent, tag, "expression:Expression", name="<pattern-expression>",
                             content=value, type="TYPE_PATTERN", returnTypeFixed="true")
    seen: set[str] = set()
    for match in INTERPOLATION.finditer(value or ""):
        path = match.group(1).strip()
        if not path or path in seen:
            continue
        seen.add(path)
        root = ROOT_IDENTIFIER.match(path)
        info = business_objects.get(root.group(1)) if root else None
        if info is None:
            continue
        script = add_element(expression, "referencedElements", "expression:Expression", name=path,
                             content=path, interpreter="GROOVY", type="TYPE_READ_ONLY_SCRIPT")
        variable = add_element(script, "referencedElements", "expression:Expression",
                               name=root.group(1), content=root.group(1), type="TYPE_VARIABLE",
                               returnType=info.class_name)
        add_business_object_ref(variable, root.group(1), info.data_type, info.class_name)
    return expression


def add_operator(parent: etree._Element, field_name: str, input_type: Optional[str]) -> etree._Element:
    operator = add_element(parent, "operator", "expression:Operator", type="JAVA_METHOD",
                           expression="set" + field_name[:1].upper() + field_name[1:])
    etree.SubElement(operator, "inputTypes").text = input_type or "java.lang.String"
    return operator
