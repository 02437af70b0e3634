"""DMN document generators for both targets."""
import re
from typing import Callable
from lxml import etree

from ..config import Config
from ..errors import StructureError
from ..xml_utils import XmlSource, localname, parse_xml, qname, serialize
from .namespaces import ensure_namespaces


CAMUNDA_DMN_NS = "http://camunda.org/schema/1.0/dmn"

PRE_RUNTIME_PATTERN = re.compile(r"\$\{~([^}]+)~\}")
EXPRESSION_PATTERN = re.compile(r"\$\{([^}]+)\}")


def flatten_camunda_dmn(text: str) -> str:
    """``${~a.b~}`` and ``${a.b}`` to ``a_b``."""
    if not text or "${" not in text:
        return text
    text = PRE_RUNTIME_PATTERN.sub(lambda m: m.group(1).replace(".", "_"), text)
    return EXPRESSION_PATTERN.sub(lambda m: m.group(1).replace(".", "_"), text)


def strip_bonita_dmn(text: str) -> str:
    """``${~a.b~}`` and ``${a.b}`` to ``a.b``."""
    if not text or "${" not in text:
        return text
    text = PRE_RUNTIME_PATTERN.sub(lambda m: m.group(1), text)
    return EXPRESSION_PATTERN.sub(lambda m: m.group(1), text)


def _rewrite_tree(root: etree._Element, rewrite: Callable[[str], str]) -> None:
    for element in root.iter(tag=etree.Element):
        for name, value in element.attrib.items():
            if "${" in value:
                element.set(name, rewrite(value))
        if element.text and "${" in element.text:
            element.text = rewrite(element.text)
        if element.tail and "${" in element.tail:
            element.tail = rewrite(element.tail)


class DMNGenerator:
    """Rewrite decision documents for Camunda or Bonita."""

    def camunda(self, source: XmlSource) -> str:
        tree = parse_xml(source)
        root = tree.getroot()
        _rewrite_tree(root, flatten_camunda_dmn)
        ensure_namespaces(root, {"camunda": CAMUNDA_DMN_NS})

        for element in root.iter(tag=etree.Element):
            name = localname(element)
            if name == "decision":
                element.set(qname(CAMUNDA_DMN_NS, "historyTimeToLive"), Config.CAMUNDA_HISTORY_TTL)
            elif name == "input":
                variable = self._input_variable(element)
                if variable:
                    element.set(qname(CAMUNDA_DMN_NS, "inputVariable"), variable)
        return serialize(tree)

    def _input_variable(self, input_el: etree._Element) -> str:
        for expression_el in input_el.iter(tag=etree.Element):
            if localname(expression_el) != "inputExpression":
                continue
            for text_el in expression_el.iter(tag=etree.Element):
                if localname(text_el) == "text":
                    return flatten_camunda_dmn("".join(text_el.itertext())).strip()
            return ""
        return ""

    def bonita(self, source: XmlSource) -> str:
        tree = parse_xml(source)
        _rewrite_tree(tree.getroot(), strip_bonita_dmn)
        return serialize(tree)

    def generate_all(self, files: dict[str, str], target: str) -> dict[str, str]:
        """Rewrite every DMN file for one target; unreadable files are reported and dropped."""
        transform = self.camunda if target == "camunda" else self.bonita
        generated = {}
        for file_name, content in files.items():
            try:
                generated[file_name] = transform(content)
            except StructureError as e:
                print(f"   ⚠️ Error processing DMN content for '{file_name}': {e}")
        return generated
