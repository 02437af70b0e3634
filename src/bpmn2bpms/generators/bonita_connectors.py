"""REST and email connector configurations for Bonita service tasks."""
import json
import posixpath
import re
from typing import Any, Callable, Optional
from lxml import etree

from ..config import Config
from ..models.process_config import NodeConfig, SmtpConfig
from ..resolvers.enrichment import extract_file_name_from_ref, strip_extension
from .bonita_xml import (
    BusinessObjectInfo,
    add_boolean_expression,
    add_element,
    add_empty_expression,
    add_integer_expression,
    add_list_expression,
    add_pattern_expression,
    add_simple_expression,
    add_table_expression,
    xmi_type,
)


REST_DEFINITION_IDS = {
    "GET": "rest-get",
    "PUT": "rest-put",
    "PATCH": "rest-patch",
    "DELETE": "rest-delete",
    "HEAD": "rest-head",
    "OPTIONS": "rest-options",
}
DEFAULT_REST_DEFINITION = "rest-post"

EMAIL_DEFINITION = "email"

EMAIL_EXPRESSION = re.compile(r"\$\{~([^}]+)~\}")

ExpressionFactory = Callable[[etree._Element], etree._Element]


def _empty(parent):
    return add_empty_expression(parent)


def _boolean(value: bool) -> ExpressionFactory:
    return lambda parent: add_boolean_expression(parent, value)


def _integer(value: Optional[int]) -> ExpressionFactory:
    return lambda parent: add_integer_expression(parent, value)


def _simple(value: str) -> ExpressionFactory:
    return lambda parent: add_simple_expression(parent, value)


# Filled in after the descriptor-driven parameters, only for keys still missing
REST_DEFAULT_PARAMETERS: list[tuple[str, ExpressionFactory]] = [
    ("urlCookies", add_table_expression),
    ("urlHeaders", add_table_expression),
    ("add_bonita_context_headers", _boolean(False)),
    ("bonita_activity_instance_id_header", _simple("X-Bonita-Activity-Instance-Id")),
    ("bonita_process_instance_id_header", _simple("X-Bonita-Process-Instance-Id")),
    ("bonita_root_process_instance_id_header", _simple("X-Bonita-Root-Process-Instance-Id")),
    ("bonita_process_definition_id_header", _simple("X-Bonita-Process-Definition-Id")),
    ("bonita_task_assignee_id_header", _simple("X-Bonita-Task-Assignee-Id")),
    ("do_not_follow_redirect", _boolean(False)),
    ("ignore_body", _boolean(False)),
    ("fail_on_http_4xx", _boolean(False)),
    ("fail_on_http_5xx", _boolean(False)),
    ("failure_exception_codes", add_table_expression),
    ("retry_on_http_5xx", _boolean(False)),
    ("retry_additional_codes", add_table_expression),
    ("max_body_content_printed", _integer(1000)),
    ("sensitive_headers_printed", _boolean(False)),
    ("TLS", _boolean(True)),
    ("hostname_verifier", _empty),
    ("trust_store_file", _empty),
    ("trust_store_password", _empty),
    ("key_store_file", _empty),
    ("key_store_password", _empty),
    ("auth_type", _simple("NONE")),
    ("auth_username", _empty),
    ("auth_password", _empty),
    ("auth_host", _empty),
    ("auth_port", _integer(None)),
    ("auth_realm", _empty),
    ("auth_preemptive", _boolean(True)),
    ("oauth2_token_endpoint", _empty),
    ("oauth2_client_id", _empty),
    ("oauth2_client_secret", _empty),
    ("oauth2_scope", _empty),
    ("oauth2_token", _empty),
    ("oauth2_code", _empty),
    ("oauth2_code_verifier", _empty),
    ("oauth2_redirect_uri", _empty),
    ("proxy_protocol", _simple("HTTP")),
    ("proxy_host", _empty),
    ("proxy_port", _integer(None)),
    ("proxy_username", _empty),
    ("proxy_password", _empty),
    ("automatic_proxy_resolution", _boolean(False)),
    ("socket_timeout_ms", _integer(60000)),
    ("connection_timeout_ms", _integer(60000)),
    ("trust_strategy", _simple("DEFAULT")),
]


def normalize_rest_key(value: Optional[str]) -> str:
    """``Call Scoring API`` to ``call_scoring_api``."""
    if not value:
        return ""
    return re.sub(r"[^a-z0-9]+", "_", value.strip().lower()).strip("_")


def resolve_descriptor_file(ref: Optional[str], task_name: Optional[str],
                            files: dict[str, str], suffix: str) -> Optional[str]:
    """Find the descriptor file for a task: by reference, then by ``<task>_<suffix>.json``."""
    if not files:
        return None
    if ref and ref.strip():
        file_name = extract_file_name_from_ref(ref.strip())
        if file_name in files:
            return file_name
    if not task_name or not task_name.strip():
        return None

    normalized = normalize_rest_key(task_name)
    for candidate in (f"{normalized}_{suffix}.json", f"{normalized}.json"):
        if candidate in files:
            return candidate
    for key in files:
        if normalize_rest_key(strip_extension(key)) in (normalized, f"{normalized}_{suffix}"):
            return key
    return None


def rest_definition_id(method: Optional[str]) -> str:
    return REST_DEFINITION_IDS.get((method or "POST").strip().upper(), DEFAULT_REST_DEFINITION)


def header_value(headers: Any, name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    if not isinstance(headers, dict):
        return None
    for key, value in headers.items():
        if key.lower() == name.lower() and isinstance(value, str):
            return value
    return None


def split_content_type(content_type: Optional[str]) -> tuple[str, str]:
    """``application/json; charset=ISO-8859-1`` to ``("application/json", "ISO-8859-1")``."""
    media_type, charset = "", ""
    if content_type:
        parts = content_type.split(";")
        media_type = parts[0].strip()
        for part in parts[1:]:
            part = part.strip()
            if part.lower().startswith("charset="):
                charset = part[len("charset="):].strip()
    return media_type or "application/json", charset or "UTF-8"


def serialize_body(body: Any) -> Optional[str]:
    if body is None:
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def connector_name(descriptor: dict, task_name: Optional[str], default: str) -> str:
    name = descriptor.get("id")
    if isinstance(name, str) and name:
        return name
    return task_name or default


def _add_connector(task_el: etree._Element, name: str, definition_id: str, event: str,
                   version: str) -> etree._Element:
    connector = add_element(task_el, "connectors", "process:Connector", name=name,
                            definitionId=definition_id, event=event, ignoreErrors="true",
                            definitionVersion=version)
    return add_element(connector, "configuration", "connectorconfiguration:ConnectorConfiguration",
                       definitionId=definition_id, version=version,
                       modelVersion=Config.CONNECTOR_MODEL_VERSION)


def add_parameter(configuration: etree._Element, key: str, expression: ExpressionFactory) -> etree._Element:
    parameter = add_element(configuration, "parameters", "connectorconfiguration:ConnectorParameter", key=key)
    expression(parameter)
    return parameter


def parameter_keys(configuration: etree._Element) -> list[str]:
    return [
        p.get("key") for p in configuration.findall("parameters")
        if xmi_type(p) == "connectorconfiguration:ConnectorParameter" and p.get("key")
    ]


def add_default_rest_parameters(configuration: etree._Element) -> None:
    existing = set(parameter_keys(configuration))
    for key, expression in REST_DEFAULT_PARAMETERS:
        if key in existing:
            continue
        add_parameter(configuration, key, expression)
        existing.add(key)


def build_rest_connector(task_el: etree._Element, descriptor: dict, task_name: Optional[str],
                         business_objects: dict[str, BusinessObjectInfo]) -> Optional[etree._Element]:
    """Append a REST connector built from a call descriptor; returns None when it has no url."""
    request = descriptor.get("request")
    if not isinstance(request, dict):
        return None
    url = request.get("url")
    if not isinstance(url, str) or not url.strip():
        return None

    definition_id = rest_definition_id(request.get("method"))
    configuration = _add_connector(task_el, connector_name(descriptor, task_name, "restConnector"),
                                   definition_id, "ON_ENTER", Config.REST_CONNECTOR_VERSION)
    add_parameter(configuration, "url", _simple(url))

    media_type, charset = split_content_type(header_value(request.get("headers"), "Content-Type"))
    add_parameter(configuration, "contentType", _simple(media_type))
    add_parameter(configuration, "charset", _simple(charset))

    body = serialize_body(request.get("body"))
    if body:
        add_parameter(configuration, "body",
                      lambda parent: add_pattern_expression(parent, body, business_objects))

    add_default_rest_parameters(configuration)
    return configuration.getparent()


# Email

def normalize_email_expressions(value: Optional[str]) -> Optional[str]:
    """``${~a.b~}`` to ``${a.b}``."""
    if not value or "${~" not in value:
        return value
    return EMAIL_EXPRESSION.sub(lambda m: "${" + m.group(1) + "}", value)


def template_parameters(body: Any) -> dict[str, str]:
    if not isinstance(body, dict) or not isinstance(body.get("parameters"), dict):
        return {}
    return {
        key: normalize_email_expressions(value)
        for key, value in body["parameters"].items()
        if isinstance(value, str)
    }


def apply_template_parameters(template: str, parameters: dict[str, str]) -> str:
    for key, value in parameters.items():
        if key:
            template = template.replace("${" + key + "}", value or "")
    return template


def find_template(refs: list[Optional[str]], templates: dict[str, str]) -> Optional[str]:
    """Template text for the first reference that names a known template file."""
    for ref in refs:
        if not ref or not ref.strip():
            continue
        file_name = posixpath.basename(extract_file_name_from_ref(ref.strip()))
        if file_name in templates:
            return templates[file_name]
    return None


def is_html(message: Optional[str]) -> bool:
    return bool(message) and "<" in message and ">" in message


def _email_value(value: Optional[str], business_objects: dict[str, BusinessObjectInfo]) -> ExpressionFactory:
    if not value or not value.strip():
        return _empty
    normalized = normalize_email_expressions(value)
    if "${" in normalized:
        return lambda parent: add_pattern_expression(parent, normalized, business_objects)
    return _simple(normalized)


def _email_message(message: Optional[str], business_objects: dict[str, BusinessObjectInfo]) -> ExpressionFactory:
    if not message or not message.strip():
        return _empty
    normalized = normalize_email_expressions(message)
    return lambda parent: add_pattern_expression(parent, normalized, business_objects)


def build_email_connector(task_el: etree._Element, descriptor: dict, task: NodeConfig, smtp: SmtpConfig,
                          templates: dict[str, str],
                          business_objects: dict[str, BusinessObjectInfo]) -> etree._Element:
    """Append an email connector built from an email descriptor and the SMTP settings."""
    headers = descriptor.get("headers") if isinstance(descriptor.get("headers"), dict) else {}

    def header(name: str) -> Optional[str]:
        value = headers.get(name)
        return normalize_email_expressions(value) if isinstance(value, str) else None

    body = descriptor.get("body") if isinstance(descriptor.get("body"), dict) else {}
    template = find_template([task.email_ftl_ref, body.get("templateRef")], templates)
    if template is None:
        print(f"   ⚠️ Email template not found for task '{task.name}'")
        template = ""
    message = normalize_email_expressions(apply_template_parameters(template, template_parameters(body)))

    configuration = _add_connector(task_el, connector_name(descriptor, task.name, "emailConnector"),
                                   EMAIL_DEFINITION, "ON_FINISH", Config.EMAIL_CONNECTOR_VERSION)
    port = smtp.port if smtp.port and smtp.port > 0 else None
    parameters: list[tuple[str, ExpressionFactory]] = [
        ("smtpHost", _simple(smtp.host or "")),
        ("smtpPort", _integer(port)),
        ("sslSupport", _boolean(False)),
        ("starttlsSupport", _boolean(True)),
        ("trustCertificate", _boolean(False)),
        ("authType", _simple("Basic authentication")),
        ("userName", _simple(smtp.username or "")),
        ("password", _simple(smtp.password or "")),
        ("oauth2AccessToken", _empty),
        ("from", _email_value(header("from") or smtp.username or "", business_objects)),
        ("returnPath", _empty),
        ("to", _email_value(header("to"), business_objects)),
        ("bcc", _email_value(header("bcc"), business_objects)),
        ("cc", _email_value(header("cc"), business_objects)),
        ("subject", _email_value(header("subject"), business_objects)),
        ("html", _boolean(is_html(message))),
        ("message", _email_message(message, business_objects)),
        ("headers", add_table_expression),
        ("charset", _simple("UTF-8")),
        ("replyTo", _email_value(header("replyTo"), business_objects)),
        ("attachments", add_list_expression),
    ]
    for key, expression in parameters:
        add_parameter(configuration, key, expression)
    return configuration.getparent()

