"""Enrichment passes over the process model."""
from .expressions import (
    Dialect,
    flatten_bonita,
    flatten_camunda,
    resolve_global_variables,
    resolve_sequence_flows,
    substitute_globals,
)
from .organization import bind_lanes, propagate_lane_actors, resolve_reference
from .enrichment import (
    bind_decisions,
    bind_email_files,
    bind_forms,
    bind_rest_files,
    merge_vendor_attributes,
    normalize_camunda_business_rules,
    vendor_prefix,
)

__all__ = [
    "Dialect",
    "flatten_bonita",
    "flatten_camunda",
    "resolve_global_variables",
    "resolve_sequence_flows",
    "substitute_globals",
    "bind_lanes",
    "propagate_lane_actors",
    "resolve_reference",
    "bind_decisions",
    "bind_email_files",
    "bind_forms",
    "bind_rest_files",
    "merge_vendor_attributes",
    "normalize_camunda_business_rules",
    "vendor_prefix",
]
