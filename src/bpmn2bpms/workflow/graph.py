"""LangGraph workflow definition for BPMN to BPMS compilation."""
import json
from pathlib import Path
from typing import Literal, Optional
from langgraph.graph import StateGraph, END
from langgraph.checkpoint.memory import MemorySaver

from ..models.state import CompileState
from ..errors import StructureError
from ..extractors.bpmn_extractor import BPMNExtractor
from ..extractors.puml_extractor import PlantUMLExtractor
from ..extractors.archimate_extractor import ArchimateExtractor
from ..extractors.config_loader import load_config
from ..models.process_config import ConfigFile
from ..resolvers.expressions import (
    Dialect,
    resolve_descriptor_files,
    resolve_global_variables,
    resolve_sequence_flows,
    substitute_globals_in_files,
)
from ..resolvers.organization import bind_lanes, propagate_lane_actors
from ..resolvers.enrichment import (
    bind_decisions,
    bind_email_files,
    bind_forms,
    bind_rest_files,
    merge_vendor_attributes,
    normalize_camunda_business_rules,
    vendor_prefix,
)
from ..generators.camunda_generator import CamundaGenerator
from ..generators.bonita_generator import BonitaGenerator
from ..generators.bonita_config_generator import BonitaConfigGenerator
from ..generators.bonita_organization_generator import BonitaOrganizationGenerator
from ..generators.bonita_bom_generator import BonitaBomGenerator
from ..generators.dmn_generator import DMNGenerator
from ..xml_utils import parse_xml, save
from ..config import Config


CONFIG_FILE = "config.json"
ORGANIZATION_FILE = "organization.archimate"
CLASS_MODEL_FILE = "class-model.puml"
FORM_INDEX_FILE = "forms/index.json"


def read_directory(directory: Path, suffixes: tuple[str, ...]) -> dict[str, str]:
    """File name -> text for every file in a directory with one of the suffixes."""
    if not directory.is_dir():
        return {}
    return {
        path.name: path.read_text(encoding="utf-8")
        for path in sorted(directory.iterdir())
        if path.is_file() and path.suffix.lower() in suffixes
    }


def find_single(directory: Path, pattern: str) -> Optional[Path]:
    matches = sorted(directory.glob(pattern))
    return matches[0] if matches else None


class CompileWorkflow:
    """Orchestrates parsing, enrichment and emission for one model directory."""

    def __init__(self):
        self.bpmn_extractor = BPMNExtractor()
        self.puml_extractor = PlantUMLExtractor()
        self.archimate_extractor = ArchimateExtractor()
        self.camunda_generator = CamundaGenerator()
        self.config_generator = BonitaConfigGenerator()
        self.organization_generator = BonitaOrganizationGenerator()
        self.bom_generator = BonitaBomGenerator()
        self.dmn_generator = DMNGenerator()

    def parse_model(self, state: CompileState) -> CompileState:
        """Node: Read the model directory."""
        print("🧩 Parsing model...")

        model_dir = Path(state.get("model_dir") or Config.MODELS_DIR)
        bpmn_path = find_single(model_dir, "*.bpmn")
        if bpmn_path is None:
            raise StructureError(f"No .bpmn file found in {model_dir}")

        bpmn_tree = parse_xml(bpmn_path)
        process_model = self.bpmn_extractor.parse(bpmn_path)
        print(f"   ✅ {bpmn_path.name}: {len(process_model.processes)} process(es)")

        config_path = model_dir / CONFIG_FILE
        config = load_config(config_path) if config_path.exists() else ConfigFile()
        if not config_path.exists():
            print(f"   ⚠️ {CONFIG_FILE} not found, using an empty configuration")

        organization = None
        organization_path = model_dir / ORGANIZATION_FILE
        if organization_path.exists():
            organization = self.archimate_extractor.parse(organization_path)
            print(f"   ✅ Organization: {len(organization.roles)} role(s)")

        class_model = None
        class_model_path = model_dir / CLASS_MODEL_FILE
        if class_model_path.exists():
            class_model = self.puml_extractor.parse_file(class_model_path)
            self.puml_extractor.validate_field_names(class_model)
            print(f"   ✅ Class model: {len(class_model.classes)} class(es)")

        form_index = {}
        form_index_path = model_dir / FORM_INDEX_FILE
        if form_index_path.exists():
            form_index = json.loads(form_index_path.read_text(encoding="utf-8"))

        proc_tree = None
        if state.get("target") == "bonita":
            proc_path = find_single(model_dir, "*.proc")
            if proc_path is None:
                raise StructureError(f"No .proc skeleton found in {model_dir}")
            proc_tree = parse_xml(proc_path)

        return {
            "bpmn_file_name": bpmn_path.name,
            "bpmn_tree": bpmn_tree,
            "proc_tree": proc_tree,
            "process_model": process_model,
            "config": config,
            "organization": organization,
            "class_model": class_model,
            "dmn_files": read_directory(model_dir / "dmn", (".dmn",)),
            "rest_files": read_directory(model_dir / "rest", (".json",)),
            "email_files": read_directory(model_dir / "email", (".json",)),
            "email_templates": read_directory(model_dir / "email", (".ftl",)),
            "form_index": form_index,
            "current_step": "enrich_model",
        }

    def enrich_model(self, state: CompileState) -> CompileState:
        """Node: Apply configuration, organization and global variables."""
        print("🔗 Enriching model...")

        target = state.get("target", Config.TARGET)
        config = state["config"]
        variables = config.global_variable_map()

        model = state["process_model"]
        model = resolve_global_variables(model, variables)
        model = bind_lanes(model, config, state.get("organization"))
        model = propagate_lane_actors(model)
        model = bind_forms(model, config)
        model = bind_email_files(model, config)
        model = merge_vendor_attributes(model, config, vendor_prefix(target))
        model = bind_rest_files(model, config)
        model = bind_decisions(model, config)

        print(f"   ✅ {len(variables)} global variable(s) applied")
        return {
            "process_model": model,
            "dmn_files": substitute_globals_in_files(state.get("dmn_files", {}), variables),
            "rest_files": substitute_globals_in_files(state.get("rest_files", {}), variables),
            "email_files": substitute_globals_in_files(state.get("email_files", {}), variables),
            "current_step": target,
        }

    def camunda(self, state: CompileState) -> CompileState:
        """Node: Emit the Camunda BPMN document and its descriptors."""
        print("⚙️ Generating Camunda artifacts...")

        model = resolve_sequence_flows(state["process_model"], Dialect.CAMUNDA)
        model = normalize_camunda_business_rules(model)
        tree = self.camunda_generator.generate(model, state["bpmn_tree"])

        artifacts = {state["bpmn_file_name"]: self.camunda_generator.write(tree)}
        for name, content in resolve_descriptor_files(state.get("rest_files", {}), Dialect.CAMUNDA).items():
            artifacts[f"rest/{name}"] = content
        for name, content in resolve_descriptor_files(state.get("email_files", {}), Dialect.CAMUNDA).items():
            artifacts[f"email/{name}"] = content
        for name, content in state.get("email_templates", {}).items():
            artifacts[f"email/{name}"] = content
        for name, content in self.dmn_generator.generate_all(state.get("dmn_files", {}), "camunda").items():
            artifacts[f"dmn/{name}"] = content

        print(f"   ✅ {len(artifacts)} artifact(s) generated")
        return {
            "process_model": model,
            "artifacts": artifacts,
            "current_step": "export_artifacts",
        }

    def bonita(self, state: CompileState) -> CompileState:
        """Node: Emit the Bonita diagram and its configuration companion."""
        print("⚙️ Generating Bonita artifacts...")

        model = resolve_sequence_flows(state["process_model"], Dialect.BONITA)
        dmn_files = self.dmn_generator.generate_all(state.get("dmn_files", {}), "bonita")
        generator = BonitaGenerator(
            class_model=state.get("class_model"),
            config=state["config"],
            dmn_files=dmn_files,
            rest_files=resolve_descriptor_files(state.get("rest_files", {}), Dialect.BONITA),
            email_files=state.get("email_files", {}),
            email_templates=state.get("email_templates", {}),
            form_index=state.get("form_index", {}),
        )
        tree = generator.generate(model, state["proc_tree"])

        proc_name = Path(state["proc_tree"].docinfo.URL or "diagram.proc").name
        artifacts = {
            proc_name: generator.write(tree),
            self.config_generator.file_name(tree): self.config_generator.generate(model, state.get("organization")),
        }
        organization = state.get("organization")
        if organization is not None and organization.roles:
            artifacts[self.organization_generator.file_name()] = self.organization_generator.generate(organization)
        else:
            print(f"   ⚠️ No organization roles, {self.organization_generator.file_name()} skipped")
        class_model = state.get("class_model")
        if class_model is not None:
            artifacts[self.bom_generator.file_name()] = self.bom_generator.generate(class_model)
        for name, content in dmn_files.items():
            artifacts[f"dmn/{name}"] = content

        print(f"   ✅ {len(artifacts)} artifact(s) generated")
        return {
            "process_model": model,
            "artifacts": artifacts,
            "current_step": "export_artifacts",
        }

    def export_artifacts(self, state: CompileState) -> CompileState:
        """Node: Write generated artifacts to the output directory."""
        print("📦 Exporting artifacts...")

        output_dir = Config.ensure_dirs(state.get("output_dir"))
        artifacts = state.get("artifacts", {})
        for name, content in artifacts.items():
            save(content, output_dir / name)

        print(f"\n✅ Export complete!")
        print(f"   - Target: {state.get('target')}")
        print(f"   - Output: {output_dir}")
        for name in artifacts:
            print(f"   - {name}")

        return {
            "error": None,
            "current_step": "completed",
        }


def select_target(state: CompileState) -> Literal["camunda", "bonita"]:
    """Routing function: choose the emitter for the requested target."""
    if state.get("target", Config.TARGET) == "bonita":
        return "bonita"
    return "camunda"


def create_workflow() -> StateGraph:
    """Create the LangGraph workflow."""

    workflow_handler = CompileWorkflow()

    workflow = StateGraph(CompileState)

    workflow.add_node("parse_model", workflow_handler.parse_model)
    workflow.add_node("enrich_model", workflow_handler.enrich_model)
    workflow.add_node("camunda", workflow_handler.camunda)
    workflow.add_node("bonita", workflow_handler.bonita)
    workflow.add_node("export_artifacts", workflow_handler.export_artifacts)

    workflow.set_entry_point("parse_model")

    workflow.add_edge("parse_model", "enrich_model")

    workflow.add_conditional_edges(
        "enrich_model",
        select_target,
        {
            "camunda": "camunda",
            "bonita": "bonita"
        }
    )

    workflow.add_edge("camunda", "export_artifacts")
    workflow.add_edge("bonita", "export_artifacts")
    workflow.add_edge("export_artifacts", END)

    return workflow


def compile_workflow(checkpointer: bool = False):
    """Compile the workflow, optionally with a memory checkpointer."""
    workflow = create_workflow()
    if checkpointer:
        return workflow.compile(checkpointer=MemorySaver())
    return workflow.compile()
