"""Extractors for process, decision, class and organization documents."""
from .bpmn_extractor import BPMNExtractor
from .dmn_extractor import DMNExtractor
from .puml_extractor import PlantUMLExtractor
from .archimate_extractor import ArchimateExtractor
from .config_loader import load_config

__all__ = ["BPMNExtractor", "DMNExtractor", "PlantUMLExtractor", "ArchimateExtractor", "load_config"]
