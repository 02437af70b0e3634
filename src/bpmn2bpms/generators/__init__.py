"""Document generators for Camunda and Bonita targets."""
from .camunda_generator import CamundaGenerator
from .bonita_generator import BonitaGenerator
from .bonita_config_generator import BonitaConfigGenerator
from .bonita_organization_generator import BonitaOrganizationGenerator
from .bonita_bom_generator import BonitaBomGenerator
from .dmn_generator import DMNGenerator

__all__ = [
    "CamundaGenerator",
    "BonitaGenerator",
    "BonitaConfigGenerator",
    "BonitaOrganizationGenerator",
    "BonitaBomGenerator",
    "DMNGenerator",
]
