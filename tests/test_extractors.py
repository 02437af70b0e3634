"""
테스트: 입력 문서 파서 (BPMN, PlantUML, ArchiMate, config.json, DMN)
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bpmn2bpms.errors import FormatError, StructureError
from bpmn2bpms.extractors import BPMNExtractor, DMNExtractor, PlantUMLExtractor, load_config
from bpmn2bpms.extractors.bpmn_extractor import is_valid_duration, parse_data_object_label
from bpmn2bpms.models import FlowNodeType

from conftest import CONFIG, SCORE_DMN


def timer_bpmn(duration: str) -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL" id="Definitions_1">
  <bpmn:process id="Process_1">
    <bpmn:intermediateCatchEvent id="Timer_1" name="Wait">
      <bpmn:timerEventDefinition id="TimerEventDefinition_1">
        <bpmn:timeDuration>{duration}</bpmn:timeDuration>
      </bpmn:timerEventDefinition>
    </bpmn:intermediateCatchEvent>
  </bpmn:process>
</bpmn:definitions>
"""


class TestBPMNExtractor:
    """BPMN 파서 테스트"""

    def test_process_structure(self, process_model):
        process = process_model.get_process("Process_1")
        assert process_model.has_collaboration
        assert process.is_executable
        assert [lane.name for lane in process.lanes] == ["Clerk", "Manager"]
        assert process.nodes["Task_Review"].type == FlowNodeType.USER_TASK
        assert process.nodes["Task_Score"].type == FlowNodeType.BUSINESS_RULE_TASK
        assert len(process.sequence_flows) == 8

    def test_data_associations(self, process_model):
        process = process_model.get_process("Process_1")
        review = process.nodes["Task_Review"]
        assert review.data_outputs[0].target_ref == "DataRef_Request"
        assert process.nodes["Task_Approve"].data_inputs[0].source_ref == "DataRef_Request"
        assert process.output_data_object(review).variable_name == "request"

    def test_data_object_label(self, process_model):
        data_object = process_model.get_process("Process_1").data_objects["DataRef_Request"]
        assert data_object.variable_name == "request"
        assert data_object.type_name == "Request"
        assert data_object.state_name == "submitted"

    def test_label_variants(self):
        assert parse_data_object_label("loan: Loan[approved]") == ("loan", "Loan", "approved")
        assert parse_data_object_label("loan: Loan") == ("loan", "Loan", None)
        assert parse_data_object_label("loan: Loan\n[]") == ("loan", "Loan", None)
        assert parse_data_object_label("Just a note") == (None, None, None)
        assert parse_data_object_label(None) == (None, None, None)

    def test_timer_duration(self, process_model):
        assert process_model.find_node("Timer_Wait").timer_duration == "PT1H30M"

    def test_condition_expression(self, process_model):
        flow = process_model.get_process("Process_1").sequence_flows["Flow_Big"]
        assert flow.expression == "${~request.amount~ > ~globalVariables.limit~}"
        assert flow.name == "Big amount"

    @pytest.mark.parametrize("duration", ["P", "PT", "P1DT", "PT5X", "5M"])
    def test_invalid_timer_raises(self, duration):
        with pytest.raises(FormatError):
            BPMNExtractor().parse(timer_bpmn(duration))

    def test_duration_grammar(self):
        assert is_valid_duration("PT5M")
        assert is_valid_duration("P1D")
        assert is_valid_duration("P2W")
        assert is_valid_duration("PT1.5S")
        assert not is_valid_duration("P1W2D")

    def test_wrong_root_raises(self):
        with pytest.raises(StructureError):
            BPMNExtractor().parse('<bpmn:process xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL" id="p"/>')

    def test_malformed_xml_raises(self):
        with pytest.raises(StructureError):
            BPMNExtractor().parse("<definitions><unclosed></definitions>")


class TestPlantUMLExtractor:
    """클래스 모델 파서 테스트"""

    def test_classes_enums_and_compositions(self, class_model):
        assert set(class_model.classes) == {"Request", "Applicant"}
        assert [f.name for f in class_model.fields_of("Request")] == ["amount", "decision", "reference", "applicant"]
        assert class_model.fields_of("Request")[3].type == "Applicant"
        assert class_model.enums["Status"] == ["OPEN", "CLOSED"]
        composition = class_model.compositions[0]
        assert (composition.owner, composition.part) == ("Request", "Applicant")

    def test_untyped_field(self):
        model = PlantUMLExtractor().parse("class Note {\n  text\n}\n")
        assert model.fields_of("Note")[0].type is None

    def test_unsupported_line_raises(self):
        with pytest.raises(FormatError):
            PlantUMLExtractor().parse("interface Thing {\n}\n")

    def test_unclosed_block_raises(self):
        with pytest.raises(FormatError):
            PlantUMLExtractor().parse("class Open {\n  name: String\n")

    def test_reserved_field_name_is_rejected(self):
        parser = PlantUMLExtractor()
        model = parser.parse("class Item {\n  class: String\n}\n")
        with pytest.raises(FormatError):
            parser.validate_field_names(model)


class TestArchimateExtractor:
    """조직 모델 파서 테스트"""

    def test_roles_and_assignments(self, organization):
        roles = {role.name: role for role in organization.roles}
        assert [actor.name for actor in roles["Clerk"].actors] == ["walter.bates", "helen.kelly"]
        assert roles["Auditor"].actors == []


class TestConfigLoader:
    """config.json 로더 테스트"""

    def test_load_dict(self, config):
        process_config = config.process_config("Process_1")
        assert config.global_variable_map() == {"limit": "1000"}
        assert process_config.lanes[1].vendor_specific_attributes == {"camunda:candidateGroups": "managers"}
        assert process_config.find_task("Call Scoring API").rest_call_ref == "${file:rest/scoring.json}"
        assert config.smtp_config.port == 587

    def test_camel_case_vendor_key(self):
        config = load_config({"processes": [{"id": "P", "config": {"tasks": [
            {"name": "T", "vendorSpecificAttributes": {"camunda:priority": "1"}}]}}]})
        assert config.process_config("P").tasks[0].vendor_specific_attributes == {"camunda:priority": "1"}

    def test_load_file(self, model_dir):
        config = load_config(model_dir / "config.json")
        assert config.process_config("Process_1").find_task("Approve") is not None

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(FormatError):
            load_config(path)

    def test_invalid_structure_raises(self):
        with pytest.raises(FormatError):
            load_config({"processes": [{"name": "missing id"}]})

    def test_unknown_process(self):
        assert load_config(CONFIG).process_config("Other") is None


class TestDMNExtractor:
    """DMN 결정 테이블 파서 테스트"""

    def test_decision_table(self):
        table = DMNExtractor().parse(SCORE_DMN)
        assert table.decision_id == "score"
        assert table.inputs[0].expression == "${~request.amount~}"
        assert table.inputs[0].type_ref == "integer"
        assert table.output.type_ref == "string"
        assert [rule.input_entries[0] for rule in table.rules] == ["< 1000", "1000..5000", "-"]
        assert table.rules[0].output_entry == '"APPROVE"'

    def test_document_without_table(self):
        document = '<definitions xmlns="https://www.omg.org/spec/DMN/20191111/MODEL/" id="d"/>'
        assert DMNExtractor().parse(document) is None
