"""
테스트: DMN 결정 테이블 → Groovy 스크립트 컴파일

생성된 스크립트의 조건식을 파이썬 식으로 바꿔 규칙 순서대로 평가하여
first-match 의미를 검증합니다.
"""

import re
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bpmn2bpms.compilers.decision_script import (
    DecisionScriptCompiler,
    InputVariable,
    build_rule_condition,
    normalize_literal,
    output_field,
    root_variable,
)
from bpmn2bpms.extractors.dmn_extractor import DMNExtractor
from bpmn2bpms.generators.dmn_generator import DMNGenerator
from bpmn2bpms.models.decision import DecisionInput, DecisionOutput, DecisionRule, DecisionTable

from conftest import SCORE_DMN


RULE_BLOCK = re.compile(r"if \((.*)\) \{\n    return (.*)\n\}")
CONTAINS = re.compile(r"(\[[^\]]*\])\.contains\((\w+)\)")


def to_python(condition: str) -> str:
    condition = CONTAINS.sub(r"(\2 in \1)", condition)
    condition = condition.replace("!(", "not (").replace("&&", " and ")
    return condition.replace("true", "True").replace("false", "False")


def evaluate(script: str, **values) -> Optional[str]:
    """규칙 블록을 순서대로 평가하여 첫 번째로 일치한 결과 반환"""
    for condition, output in RULE_BLOCK.findall(script):
        if eval(to_python(condition), {}, dict(values)):
            return eval(output)
    return None


def amount_table(with_wildcard: bool = True) -> DecisionTable:
    rules = [
        DecisionRule(input_entries=["< 1000"], output_entry='"APPROVE"'),
        DecisionRule(input_entries=["1000..5000"], output_entry='"REVIEW"'),
    ]
    if with_wildcard:
        rules.append(DecisionRule(input_entries=["-"], output_entry='"REJECT"'))
    return DecisionTable(
        inputs=[DecisionInput(expression="request.amount", type_ref="integer")],
        output=DecisionOutput(name="decision", type_ref="string"),
        rules=rules,
    )


class TestRuleConditions:
    """입력 항목별 조건식 생성 테스트"""

    def setup_method(self):
        self.amount = InputVariable(expression="request.amount", type_ref="integer", name="amount")
        self.status = InputVariable(expression="request.status", type_ref="string", name="status")

    def test_wildcards(self):
        assert build_rule_condition(self.amount, "-") == "true"
        assert build_rule_condition(self.amount, "") == "true"
        assert build_rule_condition(self.amount, None) == "true"

    def test_comparisons(self):
        assert build_rule_condition(self.amount, "< 1000") == "amount < 1000"
        assert build_rule_condition(self.amount, ">= 5") == "amount >= 5"
        assert build_rule_condition(self.amount, "!= 3") == "amount != 3"
        assert build_rule_condition(self.amount, "= 3") == "amount == 3"

    def test_range(self):
        assert build_rule_condition(self.amount, "1..10") == "(amount >= 1 && amount <= 10)"

    def test_membership(self):
        assert build_rule_condition(self.status, "OPEN, PENDING") == '["OPEN", "PENDING"].contains(status)'

    def test_negated_membership(self):
        assert build_rule_condition(self.status, "not(CLOSED)") == '!(["CLOSED"].contains(status))'

    def test_literal_equality(self):
        assert build_rule_condition(self.status, "OPEN") == 'status == "OPEN"'
        assert build_rule_condition(self.amount, "42") == "amount == 42"

    def test_boolean_literal(self):
        flag = InputVariable(expression="request.urgent", type_ref="boolean", name="urgent")
        assert build_rule_condition(flag, "TRUE") == "urgent == true"


class TestLiterals:
    """리터럴 인용 규칙 테스트"""

    def test_string_and_unknown_types_are_quoted(self):
        assert normalize_literal("APPROVE", "string") == '"APPROVE"'
        assert normalize_literal("APPROVE", None) == '"APPROVE"'
        assert normalize_literal("APPROVE", "custom") == '"APPROVE"'

    def test_numeric_types_are_not_quoted(self):
        assert normalize_literal("5", "integer") == "5"
        assert normalize_literal("2.5", "double") == "2.5"

    def test_quoted_and_empty_values(self):
        assert normalize_literal('"X"', "string") == '"X"'
        assert normalize_literal("", "string") == "null"


class TestDecisionScriptCompiler:
    """스크립트 전체 컴파일 테스트"""

    def setup_method(self):
        self.compiler = DecisionScriptCompiler()

    def test_first_match_semantics(self):
        """규칙은 테이블 순서대로 평가되고 첫 일치가 반환됨"""
        script = self.compiler.compile(amount_table())
        assert evaluate(script, amount=500) == "APPROVE"
        assert evaluate(script, amount=1000) == "REVIEW"
        assert evaluate(script, amount=5000) == "REVIEW"
        assert evaluate(script, amount=9000) == "REJECT"

    def test_earlier_rule_wins_on_overlap(self):
        table = DecisionTable(
            inputs=[DecisionInput(expression="request.amount", type_ref="integer")],
            output=DecisionOutput(name="decision", type_ref="string"),
            rules=[
                DecisionRule(input_entries=["-"], output_entry="FIRST"),
                DecisionRule(input_entries=["< 10"], output_entry="SECOND"),
            ],
        )
        assert evaluate(self.compiler.compile(table), amount=1) == "FIRST"

    def test_no_match_returns_null(self):
        script = self.compiler.compile(amount_table(with_wildcard=False))
        assert evaluate(script, amount=9000) is None
        assert script.rstrip().endswith("return null")

    def test_membership_rules(self):
        table = DecisionTable(
            inputs=[DecisionInput(expression="request.status", type_ref="string")],
            output=DecisionOutput(name="route", type_ref="string"),
            rules=[
                DecisionRule(input_entries=["not(OPEN, PENDING)"], output_entry="ARCHIVE"),
                DecisionRule(input_entries=["OPEN, PENDING"], output_entry="WORK"),
            ],
        )
        script = self.compiler.compile(table)
        assert evaluate(script, status="OPEN") == "WORK"
        assert evaluate(script, status="CLOSED") == "ARCHIVE"

    def test_variable_declarations(self):
        script = self.compiler.compile(amount_table())
        assert "Integer amount = (request?.amount as Integer)" in script

    def test_untyped_input_uses_def(self):
        table = DecisionTable(
            inputs=[DecisionInput(expression="request.note")],
            rules=[DecisionRule(input_entries=["x"], output_entry="y")],
        )
        assert "def note = request?.note" in self.compiler.compile(table)

    def test_colliding_variable_names(self):
        """같은 마지막 경로를 가진 입력은 접미사로 구분"""
        table = DecisionTable(
            inputs=[
                DecisionInput(expression="loan.amount", type_ref="integer"),
                DecisionInput(expression="limit.amount", type_ref="integer"),
            ],
            rules=[DecisionRule(input_entries=["> 1", "< 5"], output_entry="1")],
        )
        script = self.compiler.compile(table)
        assert "Integer amount = (loan?.amount as Integer)" in script
        assert "Integer amount1 = (limit?.amount as Integer)" in script
        assert evaluate(script, amount=2, amount1=3) == "1"

    def test_input_without_expression_is_ignored(self):
        """식이 없는 입력 열은 선언되지 않으므로 조건에서도 제외"""
        table = DecisionTable(
            inputs=[
                DecisionInput(expression="", type_ref="string"),
                DecisionInput(expression="request.amount", type_ref="integer"),
            ],
            output=DecisionOutput(name="decision", type_ref="string"),
            rules=[
                DecisionRule(input_entries=['"x"', "< 10"], output_entry="LOW"),
                DecisionRule(input_entries=['"y"', "-"], output_entry="HIGH"),
            ],
        )
        script = self.compiler.compile(table)
        assert "value" not in script
        assert "if (amount < 10) {" in script
        assert evaluate(script, amount=5) == "LOW"
        assert evaluate(script, amount=50) == "HIGH"

    def test_header(self):
        script = self.compiler.compile(amount_table())
        assert script.startswith("/*\n * Bonita Groovy script\n")
        assert " * Expected available variable: request\n" in script
        assert " * - request.amount (Integer)\n" in script
        assert ' * Returns: "APPROVE" | "REVIEW" | "REJECT"\n' in script

    def test_compile_parsed_bonita_dmn(self):
        """Bonita용으로 변환된 DMN 파일을 파싱하여 컴파일"""
        table = DMNExtractor().parse(DMNGenerator().bonita(SCORE_DMN))
        assert table.inputs[0].expression == "request.amount"
        assert table.output.name == "decision"
        script = self.compiler.compile(table)
        assert evaluate(script, amount=20) == "APPROVE"
        assert evaluate(script, amount=100000) == "REJECT"


class TestPathHelpers:
    def test_root_variable(self):
        assert root_variable("request.amount") == "request"
        assert root_variable("decision") == "decision"
        assert root_variable("  ") is None

    def test_output_field(self):
        assert output_field("request.applicant.decision") == "decision"
        assert output_field("decision") == "decision"
