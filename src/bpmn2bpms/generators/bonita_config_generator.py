"""Bonita process configuration (.conf) generator."""
from typing import Optional
from jinja2 import Template
from lxml import etree

from ..config import Config
from ..errors import StructureError
from ..models.organization import Organization
from ..models.process import ProcessModel
from ..xml_utils import remove_blank_lines
from .bonita_xml import XMI_ID, find_pool


CONFIGURATION_NS = "http://www.bonitasoft.org/ns/bpm/configuration"

CONF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<configuration:Configuration xmlns:configuration="{{ namespace }}" name="Local" version="9" username="{{ username | e }}">
  <actorMappings>
  {% for lane in lanes %}
    <actorMapping name="{{ (lane.name or '') | e }}">
      <groups/>
      <memberships/>
      <roles/>
      {% if lane.resolved_actor %}
      <users>
        <user>{{ lane.resolved_actor | e }}</user>
      </users>
      {% else %}
      <users/>
      {% endif %}
    </actorMapping>
  {% endfor %}
  </actorMappings>
  <definitionMappings type="CONNECTOR" definitionId="email" definitionVersion="1.2.0" implementationId="email-impl" implementationVersion="{{ email_version }}"/>
  <definitionMappings type="CONNECTOR" definitionId="rest-post" definitionVersion="{{ rest_version }}" implementationId="rest-post-impl" implementationVersion="{{ rest_version }}"/>
  <processDependencies id="CONNECTOR">
    <children id="email-impl-{{ email_version }}">
    {% for jar in email_jars %}
      <fragments key="email-impl -- {{ email_version }}" value="{{ jar }}" type="CONNECTOR"/>
    {% endfor %}
    </children>
  </processDependencies>
  <processDependencies id="CONNECTOR">
    <children id="rest-post-impl-{{ rest_version }}">
      <fragments key="rest-post-impl -- {{ rest_version }}" value="bonita-connector-rest-{{ rest_version }}.jar" type="CONNECTOR"/>
    </children>
  </processDependencies>
  <processDependencies id="ACTOR_FILTER"/>
  <processDependencies id="OTHER"/>
</configuration:Configuration>
"""


def first_username(organization: Optional[Organization]) -> str:
    """Name of the first actor of the first role that has actors."""
    if organization is not None:
        for role in organization.roles:
            if role.actors:
                return role.actors[0].name
    return Config.BONITA_USERNAME


class BonitaConfigGenerator:
    """Generate the local configuration companion of a .proc file."""

    def __init__(self):
        self.template = Template(CONF_TEMPLATE, trim_blocks=True, lstrip_blocks=True)

    def file_name(self, proc_tree: etree._ElementTree) -> str:
        """``<poolId>.conf``; a diagram without a pool cannot be configured."""
        pool = find_pool(proc_tree.getroot())
        if pool is None or not pool.get(XMI_ID):
            raise StructureError("No pool id found in proc document")
        return f"{pool.get(XMI_ID)}.conf"

    def generate(self, model: ProcessModel, organization: Optional[Organization] = None) -> str:
        lanes = [lane for process in model.processes for lane in process.lanes]
        content = self.template.render(
            namespace=CONFIGURATION_NS,
            username=first_username(organization),
            lanes=lanes,
            email_version=Config.EMAIL_CONNECTOR_VERSION,
            rest_version=Config.REST_CONNECTOR_VERSION,
            email_jars=[
                f"bonita-connector-email-{Config.EMAIL_CONNECTOR_VERSION}.jar",
                "javax.mail-1.6.2.jar",
                "javax.mail-api-1.6.2.jar",
            ],
        )
        return remove_blank_lines(content)
