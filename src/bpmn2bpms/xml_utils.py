"""XML helpers shared by extractors and generators."""
import re
from pathlib import Path
from typing import Optional, Union
from lxml import etree

from .errors import StructureError


BPMN_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
BPMNDI_NS = "http://www.omg.org/spec/BPMN/20100524/DI"
DC_NS = "http://www.omg.org/spec/DD/20100524/DC"
DI_NS = "http://www.omg.org/spec/DD/20100524/DI"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
DMN_NS = "https://www.omg.org/spec/DMN/20191111/MODEL/"

XmlSource = Union[str, bytes, Path]

XML_DECLARATION = re.compile(r"^<\?xml[^>]*\?>")


def _parser() -> etree.XMLParser:
    return etree.XMLParser(remove_blank_text=True)


def parse_xml(source: XmlSource) -> etree._ElementTree:
    """Parse a file path, XML text or XML bytes into an element tree."""
    try:
        if isinstance(source, bytes):
            return etree.ElementTree(etree.fromstring(source, _parser()))
        if isinstance(source, str) and source.lstrip().startswith("<"):
            return etree.ElementTree(etree.fromstring(source.encode("utf-8"), _parser()))
        return etree.parse(str(source), _parser())
    except (etree.XMLSyntaxError, OSError) as e:
        raise StructureError(f"Failed to parse XML document: {e}") from e


def localname(element: etree._Element) -> str:
    return etree.QName(element).localname


def qname(namespace: str, name: str) -> str:
    return f"{{{namespace}}}{name}"


def text_of(element: Optional[etree._Element]) -> Optional[str]:
    """Trimmed text content of an element, or None."""
    if element is None or element.text is None:
        return None
    return element.text.strip()


def remove_children(parent: etree._Element, tag: str) -> None:
    for child in parent.findall(tag):
        parent.remove(child)


def insert_before(parent: etree._Element, new_child: etree._Element, anchor: Optional[etree._Element]) -> None:
    if anchor is not None and anchor.getparent() is parent:
        anchor.addprevious(new_child)
    else:
        parent.append(new_child)


def remove_blank_lines(text: str) -> str:
    return "\n".join(line for line in text.splitlines() if line.strip()) + "\n"


def serialize(tree: etree._ElementTree, standalone: Optional[bool] = None) -> str:
    """Serialize a tree with an XML declaration and without blank lines."""
    xml = etree.tostring(
        tree,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
        standalone=standalone,
    ).decode("utf-8")
    xml = XML_DECLARATION.sub(lambda m: m.group(0).replace("'", '"'), xml, count=1)
    return remove_blank_lines(xml)


def save(content: str, output_path: Union[str, Path]) -> str:
    """Save a document to file."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return str(path)
