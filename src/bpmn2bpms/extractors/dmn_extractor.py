"""DMN decision table parser."""
from typing import Optional
from lxml import etree

from ..models.decision import DecisionInput, DecisionOutput, DecisionRule, DecisionTable
from ..xml_utils import XmlSource, localname, parse_xml


def _first_child(parent: Optional[etree._Element], name: str) -> Optional[etree._Element]:
    if parent is None:
        return None
    for child in parent.iterchildren(tag=etree.Element):
        if localname(child) == name:
            return child
    return None


def read_dmn_text(parent: Optional[etree._Element]) -> str:
    """Text of a ``text`` child, falling back to the element's own text."""
    if parent is None:
        return ""
    text_el = _first_child(parent, "text")
    source = text_el if text_el is not None else parent
    return "".join(source.itertext()).strip()


class DMNExtractor:
    """Parse the first decision table of a DMN document."""

    def parse(self, source: XmlSource) -> Optional[DecisionTable]:
        root = parse_xml(source).getroot()
        table_el = next(
            (el for el in root.iter(tag=etree.Element) if localname(el) == "decisionTable"),
            None,
        )
        if table_el is None:
            return None

        decision_el = table_el.getparent()
        table = DecisionTable(decision_id=decision_el.get("id") if decision_el is not None else None)
        for child in table_el.iterchildren(tag=etree.Element):
            name = localname(child)
            if name == "input":
                expression_el = _first_child(child, "inputExpression")
                table.inputs.append(DecisionInput(
                    expression=read_dmn_text(expression_el),
                    type_ref=expression_el.get("typeRef") if expression_el is not None else None,
                ))
            elif name == "output" and table.output is None:
                table.output = DecisionOutput(name=child.get("name"), type_ref=child.get("typeRef"))
            elif name == "rule":
                rule = DecisionRule()
                for cell in child.iterchildren(tag=etree.Element):
                    if localname(cell) == "inputEntry":
                        rule.input_entries.append(read_dmn_text(cell))
                    elif localname(cell) == "outputEntry":
                        rule.output_entry = read_dmn_text(cell)
                table.rules.append(rule)
        return table
