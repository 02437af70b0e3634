"""Configuration management."""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load .env file
load_dotenv()


class Config:
    """Compiler configuration."""

    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent.parent
    OUTPUT_DIR: Path = Path(os.getenv("BPMN2BPMS_OUTPUT_DIR", str(BASE_DIR / "output")))
    MODELS_DIR: Path = Path(os.getenv("BPMN2BPMS_MODELS_DIR", str(BASE_DIR / "models")))

    # Target selection
    TARGET: str = os.getenv("BPMN2BPMS_TARGET", "camunda")

    # Camunda
    CAMUNDA_HISTORY_TTL: str = os.getenv("CAMUNDA_HISTORY_TTL", "P180D")
    CAMUNDA_EXPORTER: str = "Camunda Modeler"
    CAMUNDA_EXPORTER_VERSION: str = os.getenv("CAMUNDA_EXPORTER_VERSION", "5.27.0")
    CAMUNDA_PLATFORM: str = "Camunda Platform"
    CAMUNDA_PLATFORM_VERSION: str = os.getenv("CAMUNDA_PLATFORM_VERSION", "7.24.0")
    CAMUNDA_TARGET_NAMESPACE: str = "http://bpmn.io/schema/bpmn"

    # Bonita
    BONITA_USERNAME: str = os.getenv("BONITA_USERNAME", "walter.bates")
    BONITA_MODEL_PACKAGE: str = "com.company.model"
    REST_CONNECTOR_VERSION: str = os.getenv("REST_CONNECTOR_VERSION", "1.5.0")
    EMAIL_CONNECTOR_VERSION: str = os.getenv("EMAIL_CONNECTOR_VERSION", "1.3.0")
    CONNECTOR_MODEL_VERSION: str = "9"

    @classmethod
    def ensure_dirs(cls, output_dir: Optional[Path] = None) -> Path:
        """Ensure the output directory exists."""
        path = Path(output_dir) if output_dir else cls.OUTPUT_DIR
        path.mkdir(parents=True, exist_ok=True)
        return path
