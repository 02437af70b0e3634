"""
테스트 공용 픽스처: 대출 심사 프로세스 모델

BPMN, 설정(config.json), 조직(ArchiMate), 클래스 모델(PlantUML),
DMN, REST/이메일 디스크립터, Bonita 다이어그램 골격을 문자열로 제공합니다.
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bpmn2bpms.extractors import BPMNExtractor, PlantUMLExtractor, ArchimateExtractor, load_config
from bpmn2bpms.xml_utils import parse_xml


BPMN_XML = """<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL"
                  xmlns:bpmndi="http://www.omg.org/spec/BPMN/20100524/DI"
                  xmlns:dc="http://www.omg.org/spec/DD/20100524/DC"
                  xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
                  id="Definitions_1">
  <bpmn:collaboration id="Collaboration_1">
    <bpmn:participant id="Participant_1" name="Loan" processRef="Process_1"/>
  </bpmn:collaboration>
  <bpmn:process id="Process_1" name="Loan" isExecutable="TRUE">
    <bpmn:laneSet id="LaneSet_1">
      <bpmn:lane id="Lane_Clerk" name="Clerk">
        <bpmn:flowNodeRef>Start_1</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Task_Review</bpmn:flowNodeRef>
      </bpmn:lane>
      <bpmn:lane id="Lane_Manager" name="Manager">
        <bpmn:flowNodeRef>Task_Approve</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Task_Score</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Task_Notify</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Task_Call</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Timer_Wait</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>End_1</bpmn:flowNodeRef>
      </bpmn:lane>
    </bpmn:laneSet>
    <bpmn:startEvent id="Start_1" name="Start"/>
    <bpmn:userTask id="Task_Review" name="Review Request">
      <bpmn:dataOutputAssociation id="DataOutputAssociation_1">
        <bpmn:targetRef>DataRef_Request</bpmn:targetRef>
      </bpmn:dataOutputAssociation>
    </bpmn:userTask>
    <bpmn:userTask id="Task_Approve" name="Approve">
      <bpmn:dataInputAssociation id="DataInputAssociation_1">
        <bpmn:sourceRef>DataRef_Request</bpmn:sourceRef>
      </bpmn:dataInputAssociation>
    </bpmn:userTask>
    <bpmn:businessRuleTask id="Task_Score" name="Score Request"/>
    <bpmn:serviceTask id="Task_Notify" name="Notify Customer"/>
    <bpmn:serviceTask id="Task_Call" name="Call Scoring API"/>
    <bpmn:intermediateCatchEvent id="Timer_Wait" name="Wait">
      <bpmn:timerEventDefinition id="TimerEventDefinition_1">
        <bpmn:timeDuration xsi:type="bpmn:tFormalExpression">PT1H30M</bpmn:timeDuration>
      </bpmn:timerEventDefinition>
    </bpmn:intermediateCatchEvent>
    <bpmn:endEvent id="End_1" name="End"/>
    <bpmn:dataObjectReference id="DataRef_Request" name="request: Request&#10;[submitted]" dataObjectRef="DataObject_1"/>
    <bpmn:dataObject id="DataObject_1"/>
    <bpmn:sequenceFlow id="Flow_1" sourceRef="Start_1" targetRef="Task_Review"/>
    <bpmn:sequenceFlow id="Flow_Big" name="Big amount" sourceRef="Task_Review" targetRef="Task_Approve">
      <bpmn:conditionExpression xsi:type="bpmn:tFormalExpression">${~request.amount~ &gt; ~globalVariables.limit~}</bpmn:conditionExpression>
    </bpmn:sequenceFlow>
    <bpmn:sequenceFlow id="Flow_Small" name="Small amount" sourceRef="Task_Review" targetRef="Task_Score">
      <bpmn:conditionExpression xsi:type="bpmn:tFormalExpression">${~request.amount~ &lt;= ~globalVariables.limit~}</bpmn:conditionExpression>
    </bpmn:sequenceFlow>
    <bpmn:sequenceFlow id="Flow_2" sourceRef="Task_Score" targetRef="Task_Call"/>
    <bpmn:sequenceFlow id="Flow_3" sourceRef="Task_Call" targetRef="Task_Notify"/>
    <bpmn:sequenceFlow id="Flow_4" sourceRef="Task_Notify" targetRef="Timer_Wait"/>
    <bpmn:sequenceFlow id="Flow_5" sourceRef="Timer_Wait" targetRef="End_1"/>
    <bpmn:sequenceFlow id="Flow_6" sourceRef="Task_Approve" targetRef="End_1"/>
  </bpmn:process>
</bpmn:definitions>
"""

CONFIG = {
    "globalVariables": [{"name": "limit", "value": "1000"}],
    "processes": [{
        "id": "Process_1",
        "name": "Loan",
        "config": {
            "lanes": [
                {"name": "Clerk", "assignee": "${ref:organization.walter.bates}"},
                {
                    "name": "Manager",
                    "assignee": "helen.kelly",
                    "vendor_specific_attributes": {"camunda:candidateGroups": "managers"},
                },
            ],
            "tasks": [
                {"name": "Review Request", "formRef": "${file:forms/review-request.json}"},
                {
                    "name": "Notify Customer",
                    "emailJsonRef": "${file:email/notify.json}",
                    "emailFtlRef": "${file:email/notify.ftl}",
                },
                {"name": "Call Scoring API", "restCallRef": "${file:rest/scoring.json}"},
                {
                    "name": "Score Request",
                    "dmnRef": "${file:dmn/score.dmn}",
                    "dmnResultVariable": "${~request.decision~}",
                },
                {
                    "name": "Approve",
                    "vendor_specific_attributes": {
                        "camunda:priority": "10",
                        "bonita:loop": '<loopCondition xmi:type="expression:Expression" xmi:id="_loop" name="done" content="done"/>',
                    },
                },
            ],
            "events": [],
        },
    }],
    "smtpConfig": {"host": "smtp.example.com", "port": 587, "username": "mailer@example.com", "password": "secret"},
}

ORGANIZATION_XML = """<?xml version="1.0" encoding="UTF-8"?>
<archimate:model xmlns:archimate="http://www.archimatetool.com/archimate"
                 xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" name="Bank" id="model-1">
  <folder name="Business" id="folder-1" type="business">
    <element xsi:type="archimate:BusinessActor" name="walter.bates" id="actor-1"/>
    <element xsi:type="archimate:BusinessActor" name="helen.kelly" id="actor-2"/>
    <element xsi:type="archimate:BusinessRole" name="Clerk" id="role-1"/>
    <element xsi:type="archimate:BusinessRole" name="Auditor" id="role-2"/>
  </folder>
  <folder name="Relations" id="folder-2" type="relations">
    <element xsi:type="archimate:AssignmentRelationship" id="rel-1" source="actor-1" target="role-1"/>
    <element xsi:type="archimate:AssignmentRelationship" id="rel-2" source="actor-2" target="role-1"/>
  </folder>
</archimate:model>
"""

CLASS_MODEL_PUML = """@startuml
' Loan domain
class Request {
  amount: Integer
  decision: String
  reference: Long
  applicant: Applicant
}
class Applicant {
  name: String
  phone: Long
}
enum Status {
  OPEN
  CLOSED
}
Request "1" *-- "1" Applicant
@enduml
"""

SCORE_DMN = """<?xml version="1.0" encoding="UTF-8"?>
<definitions xmlns="https://www.omg.org/spec/DMN/20191111/MODEL/" id="Definitions_score" name="Score"
             namespace="http://camunda.org/schema/1.0/dmn">
  <decision id="score" name="Score">
    <decisionTable id="DecisionTable_1" hitPolicy="FIRST">
      <input id="Input_1" label="Amount">
        <inputExpression id="InputExpression_1" typeRef="integer">
          <text>${~request.amount~}</text>
        </inputExpression>
      </input>
      <output id="Output_1" name="decision" typeRef="string"/>
      <rule id="Rule_1">
        <inputEntry id="Entry_1"><text>&lt; 1000</text></inputEntry>
        <outputEntry id="Out_1"><text>"APPROVE"</text></outputEntry>
      </rule>
      <rule id="Rule_2">
        <inputEntry id="Entry_2"><text>1000..5000</text></inputEntry>
        <outputEntry id="Out_2"><text>"REVIEW"</text></outputEntry>
      </rule>
      <rule id="Rule_3">
        <inputEntry id="Entry_3"><text>-</text></inputEntry>
        <outputEntry id="Out_3"><text>"REJECT"</text></outputEntry>
      </rule>
    </decisionTable>
  </decision>
</definitions>
"""

REST_DESCRIPTOR = {
    "id": "scoringCall",
    "request": {
        "method": "PUT",
        "url": "https://scoring.example.com/api/${~globalVariables.limit~}",
        "headers": {"content-type": "application/xml; charset=ISO-8859-1"},
        "body": '{"amount": "${~request.amount~}", "note": "amount ${~request.amount~}"}',
    },
}

EMAIL_DESCRIPTOR = {
    "headers": {
        "to": "${~request.applicant.email~}",
        "subject": "Your request",
    },
    "body": {
        "templateRef": "${file:email/notify.ftl}",
        "parameters": {"decision": "${~request.decision~}"},
    },
}

EMAIL_TEMPLATE = "<p>Decision: ${decision}</p>"

PROC_XML = """<?xml version="1.0" encoding="UTF-8"?>
<xmi:XMI xmi:version="2.0" xmlns:xmi="http://www.omg.org/XMI"
         xmlns:process="http://www.bonitasoft.org/ns/bpm/process"
         xmlns:expression="http://www.bonitasoft.org/ns/bpm/expression">
  <process:MainProcess xmi:id="_main" name="Loan">
    <elements xmi:type="process:Pool" xmi:id="_pool" name="Loan">
      <elements xmi:type="process:Lane" xmi:id="_laneClerk" name="Clerk">
        <elements xmi:type="process:StartEvent" xmi:id="_start" name="Start"/>
        <elements xmi:type="process:Task" xmi:id="_review" name="Review Request">
          <contract xmi:type="process:Contract" xmi:id="_contract"/>
          <expectedDuration xmi:type="expression:Expression" xmi:id="_duration" name="" content=""/>
        </elements>
      </elements>
      <elements xmi:type="process:Lane" xmi:id="_laneManager" name="Manager">
        <elements xmi:type="process:Task" xmi:id="_approve" name="Approve"/>
        <elements xmi:type="process:Task" xmi:id="_score" name="Score Request"/>
        <elements xmi:type="process:ServiceTask" xmi:id="_notify" name="Notify Customer"/>
        <elements xmi:type="process:ServiceTask" xmi:id="_call" name="Call Scoring API"/>
        <elements xmi:type="process:IntermediateCatchTimerEvent" xmi:id="_timer" name="Wait"/>
        <elements xmi:type="process:SendTask" xmi:id="_send" name="Send Letter" overrideActorsOfTheLane="false" priority="0"/>
      </elements>
      <connections xmi:type="process:SequenceFlow" xmi:id="_flowBig" name="Big amount" source="_review" target="_approve"/>
      <connections xmi:type="process:SequenceFlow" xmi:id="_flowSmall" name="Small amount" source="_review" target="_score"/>
      <datatypes xmi:type="process:BusinessObjectType" xmi:id="_businessObject" name="Business_Object"/>
    </elements>
  </process:MainProcess>
</xmi:XMI>
"""

FORM_INDEX = {"c0ffee00-0000-4000-8000-000000000001": "reviewRequest"}


@pytest.fixture
def process_model():
    return BPMNExtractor().parse(BPMN_XML)


@pytest.fixture
def config():
    return load_config(CONFIG)


@pytest.fixture
def organization():
    return ArchimateExtractor().parse(ORGANIZATION_XML)


@pytest.fixture
def class_model():
    return PlantUMLExtractor().parse(CLASS_MODEL_PUML)


@pytest.fixture
def bpmn_tree():
    return parse_xml(BPMN_XML)


@pytest.fixture
def proc_tree():
    return parse_xml(PROC_XML)


@pytest.fixture
def model_dir(tmp_path):
    """디스크에 모델 디렉터리 구성"""
    root = tmp_path / "model"
    (root / "dmn").mkdir(parents=True)
    (root / "rest").mkdir()
    (root / "email").mkdir()
    (root / "forms").mkdir()
    (root / "loan.bpmn").write_text(BPMN_XML, encoding="utf-8")
    (root / "loan.proc").write_text(PROC_XML, encoding="utf-8")
    (root / "config.json").write_text(json.dumps(CONFIG), encoding="utf-8")
    (root / "organization.archimate").write_text(ORGANIZATION_XML, encoding="utf-8")
    (root / "class-model.puml").write_text(CLASS_MODEL_PUML, encoding="utf-8")
    (root / "dmn" / "score.dmn").write_text(SCORE_DMN, encoding="utf-8")
    (root / "rest" / "scoring.json").write_text(json.dumps(REST_DESCRIPTOR), encoding="utf-8")
    (root / "email" / "notify.json").write_text(json.dumps(EMAIL_DESCRIPTOR), encoding="utf-8")
    (root / "email" / "notify.ftl").write_text(EMAIL_TEMPLATE, encoding="utf-8")
    (root / "forms" / "index.json").write_text(json.dumps(FORM_INDEX), encoding="utf-8")
    return root
