"""Bonita organization (Organization.xml) generator."""
from lxml import etree

from ..errors import StructureError
from ..models.organization import Organization
from ..xml_utils import qname, serialize


ORGANIZATION_NS = "http://documentation.bonitasoft.com/organization-xml-schema/1.1"
ORGANIZATION_FILE = "Organization.xml"
DEFAULT_PASSWORD = "bpm"
DEFAULT_GROUP = "Default"


class BonitaOrganizationGenerator:
    """Generate a Bonita organization from the ArchiMate roles and actors.

    Every actor becomes a user, every role a role, and each actor/role
    assignment a membership of the single default group.
    """

    def file_name(self) -> str:
        return ORGANIZATION_FILE

    def memberships(self, organization: Organization) -> dict[str, list[str]]:
        """Actor name -> role names, in role order."""
        memberships: dict[str, list[str]] = {}
        for role in organization.roles:
            for actor in role.actors:
                roles = memberships.setdefault(actor.name, [])
                if role.name not in roles:
                    roles.append(role.name)
        return memberships

    def generate(self, organization: Organization) -> str:
        if not organization.roles:
            raise StructureError("No roles found in organization, cannot generate organization file")

        memberships = self.memberships(organization)
        user_names = sorted(memberships)

        root = etree.Element(qname(ORGANIZATION_NS, "Organization"), nsmap={"organization": ORGANIZATION_NS})
        etree.SubElement(root, "customUserInfoDefinitions")

        users = etree.SubElement(root, "users")
        for user_name in user_names:
            user = etree.SubElement(users, "user", userName=user_name)
            etree.SubElement(user, "personalData")
            etree.SubElement(user, "professionalData")
            password = etree.SubElement(user, "password", encrypted="false")
            password.text = DEFAULT_PASSWORD
            etree.SubElement(user, "customUserInfoValues")

        roles = etree.SubElement(root, "roles")
        for role_name in sorted(role.name for role in organization.roles):
            role = etree.SubElement(roles, "role", name=role_name)
            etree.SubElement(role, "displayName").text = role_name

        groups = etree.SubElement(root, "groups")
        group = etree.SubElement(groups, "group", name=DEFAULT_GROUP)
        etree.SubElement(group, "displayName").text = DEFAULT_GROUP

        membership_list = etree.SubElement(root, "memberships")
        for user_name in user_names:
            for role_name in memberships[user_name]:
                membership = etree.SubElement(membership_list, "membership")
                etree.SubElement(membership, "userName").text = user_name
                etree.SubElement(membership, "roleName").text = role_name
                etree.SubElement(membership, "groupName").text = DEFAULT_GROUP

        return serialize(etree.ElementTree(root))
