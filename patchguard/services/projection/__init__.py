"""
Projection module.
Allowlist-based field projection for client-supplied payloads.
"""
from patchguard.services.projection.field_projector import (
    RecordKind,
    classify_record,
    dropped_keys,
    normalize_allowlist,
    project,
)
from patchguard.services.projection.policies import (
    AllowlistPolicy,
    PolicyRegistry,
    get_policy_registry,
)

__all__ = [
    "RecordKind",
    "classify_record",
    "dropped_keys",
    "normalize_allowlist",
    "project",
    "AllowlistPolicy",
    "PolicyRegistry",
    "get_policy_registry",
]
