"""
테스트: 조직 바인딩과 설정 기반 보강(enrichment) 패스
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bpmn2bpms.resolvers import (
    bind_decisions,
    bind_email_files,
    bind_forms,
    bind_lanes,
    bind_rest_files,
    merge_vendor_attributes,
    normalize_camunda_business_rules,
    propagate_lane_actors,
    resolve_reference,
    vendor_prefix,
)
from bpmn2bpms.resolvers.enrichment import (
    form_key_from_ref,
    merge_attributes,
    normalize_dmn_result_variable,
)
from bpmn2bpms.resolvers.organization import initiator_lane


class TestOrganizationBinder:
    """레인 담당자 바인딩 테스트"""

    def test_resolve_reference(self, organization):
        assert resolve_reference("${ref:organization.walter.bates}", organization) == "walter.bates"
        assert resolve_reference("${ref:organization.actor-2}", organization) == "helen.kelly"

    def test_unresolved_reference_is_kept(self, organization):
        assert resolve_reference("${ref:organization.nobody}", organization) == "${ref:organization.nobody}"
        assert resolve_reference("plain.user", organization) == "plain.user"
        assert resolve_reference("${ref:organization.walter.bates}", None) == "${ref:organization.walter.bates}"

    def test_bind_lanes(self, process_model, config, organization):
        model = bind_lanes(process_model, config, organization)
        lanes = {lane.name: lane for lane in model.get_process("Process_1").lanes}
        assert lanes["Clerk"].resolved_actor == "walter.bates"
        assert lanes["Manager"].resolved_actor == "helen.kelly"

    def test_lane_actor_propagates_to_user_tasks_only(self, process_model, config, organization):
        model = propagate_lane_actors(bind_lanes(process_model, config, organization))
        assert model.find_node("Task_Review").resolved_actor == "walter.bates"
        assert model.find_node("Task_Approve").resolved_actor == "helen.kelly"
        assert model.find_node("Task_Notify").resolved_actor is None
        assert model.find_node("Start_1").resolved_actor is None

    def test_initiator_lane(self, process_model):
        assert initiator_lane(process_model.get_process("Process_1")).name == "Clerk"

    def test_passes_do_not_mutate_input(self, process_model, config, organization):
        bind_lanes(process_model, config, organization)
        assert process_model.get_process("Process_1").lanes[0].resolved_actor is None


class TestConfigurationPasses:
    """폼, 이메일, REST, DMN 바인딩 테스트"""

    def test_bind_forms(self, process_model, config):
        review = bind_forms(process_model, config).find_node("Task_Review")
        assert review.resolved_form_ref == "embedded:app:forms/review-request.html"
        assert review.resolved_form_output_variable_name == "request"

    def test_form_key(self):
        assert form_key_from_ref("${file:forms/x.json}") == "embedded:app:forms/x.html"
        assert form_key_from_ref("forms/x.json") is None

    def test_bind_email_files(self, process_model, config):
        notify = bind_email_files(process_model, config).find_node("Task_Notify")
        assert notify.resolved_email_config_file_name == "notify.json"
        assert notify.resolved_email_template_file_name == "notify.ftl"
        assert notify.has_email

    def test_bind_rest_files(self, process_model, config):
        call = bind_rest_files(process_model, config).find_node("Task_Call")
        assert call.resolved_rest_call_file_name == "scoring.json"

    def test_bind_decisions(self, process_model, config):
        score = bind_decisions(process_model, config).find_node("Task_Score")
        assert score.dmn_ref == "${file:dmn/score.dmn}"
        assert score.dmn_result_variable == "${~request.decision~}"

    def test_normalize_camunda_business_rules(self, process_model, config):
        score = normalize_camunda_business_rules(bind_decisions(process_model, config)).find_node("Task_Score")
        assert score.dmn_ref == "score"
        assert score.dmn_result_variable == "request_decision"

    def test_normalize_dmn_result_variable(self):
        assert normalize_dmn_result_variable("${~request.decision~}") == "request.decision"
        assert normalize_dmn_result_variable("~result~") == "result"
        assert normalize_dmn_result_variable("   ") is None


class TestVendorAttributes:
    """벤더 속성 병합 테스트"""

    def test_merge_attributes_with_predicate(self):
        merged = merge_attributes(
            {"camunda:asyncBefore": "true"},
            {"camunda:priority": 5, "bonita:xml": "<a/>", "none": None},
            vendor_prefix("camunda"),
        )
        assert merged == {"camunda:asyncBefore": "true", "camunda:priority": "5"}

    def test_vendor_prefix_matches_start_of_key(self):
        """대상 이름은 접두사로만 일치"""
        accept = vendor_prefix("bonita")
        assert accept("bonita:loop")
        assert not accept("camunda:bonitaLoop")
        assert not accept("bonitaLoop")

    def test_merge_for_camunda(self, process_model, config):
        model = merge_vendor_attributes(process_model, config, vendor_prefix("camunda"))
        assert model.find_node("Task_Approve").vendor_attributes == {"camunda:priority": "10"}
        assert model.find_lane("Lane_Manager").vendor_attributes == {"camunda:candidateGroups": "managers"}

    def test_merge_for_bonita(self, process_model, config):
        model = merge_vendor_attributes(process_model, config, vendor_prefix("bonita"))
        assert list(model.find_node("Task_Approve").vendor_attributes) == ["bonita:loop"]
        assert model.find_lane("Lane_Manager").vendor_attributes == {}

    def test_merge_without_predicate_keeps_everything(self, process_model, config):
        model = merge_vendor_attributes(process_model, config)
        assert set(model.find_node("Task_Approve").vendor_attributes) == {"camunda:priority", "bonita:loop"}
