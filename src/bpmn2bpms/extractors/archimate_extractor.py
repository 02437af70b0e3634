"""ArchiMate organization parser."""
from lxml import etree

from ..models.organization import Actor, Organization, Role
from ..xml_utils import XSI_NS, XmlSource, localname, parse_xml, qname


XSI_TYPE = qname(XSI_NS, "type")

BUSINESS_ACTOR = "archimate:BusinessActor"
BUSINESS_ROLE = "archimate:BusinessRole"
ASSIGNMENT = "archimate:AssignmentRelationship"


class ArchimateExtractor:
    """Read business roles and the actors assigned to them."""

    def parse(self, source: XmlSource) -> Organization:
        root = parse_xml(source).getroot()
        elements = [el for el in root.iter(tag=etree.Element) if localname(el) == "element"]

        actors: dict[str, Actor] = {}
        roles: dict[str, Role] = {}
        for element in elements:
            element_type = element.get(XSI_TYPE)
            element_id = element.get("id") or ""
            if element_type == BUSINESS_ACTOR:
                actors[element_id] = Actor(id=element_id, name=element.get("name") or "")
            elif element_type == BUSINESS_ROLE:
                roles[element_id] = Role(id=element_id, name=element.get("name") or "")

        for element in elements:
            if element.get(XSI_TYPE) != ASSIGNMENT:
                continue
            actor = actors.get(element.get("source"))
            role = roles.get(element.get("target"))
            if actor is not None and role is not None:
                role.actors.append(actor)

        return Organization(roles=list(roles.values()))
