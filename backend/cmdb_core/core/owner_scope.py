"""Owner Scope: tenant scoping of store conditions.

Invariants:
    - Never mutates the caller's condition: every function returns a new dict
    - Super owner is never constrained
    - Query scope also admits documents of the default (shared) owner; modification scope does not
"""

from typing import Any

from cmdb_core.core.domain_types import (
    OWNER_FIELD, METADATA_FIELD, LABEL_FIELD, BIZ_ID_FIELD,
)


def set_query_owner(
    condition: dict[str, Any] | None, owner_id: str,
    default_owner_id: str, super_owner_id: str,
) -> dict[str, Any]:
    """Scope a read condition to owner_id (plus the default owner's shared documents)."""
    scoped = dict(condition or {})
    if owner_id == super_owner_id:
        return scoped
    if owner_id == default_owner_id:
        scoped[OWNER_FIELD] = default_owner_id
    else:
        scoped[OWNER_FIELD] = {"$in": [default_owner_id, owner_id]}
    return scoped


def set_mod_owner(
    condition: dict[str, Any] | None, owner_id: str, super_owner_id: str,
) -> dict[str, Any]:
    """Scope a write condition to exactly owner_id."""
    scoped = dict(condition or {})
    if owner_id == super_owner_id:
        return scoped
    scoped[OWNER_FIELD] = owner_id
    return scoped


def extract_label(condition: dict[str, Any]) -> dict[str, str]:
    """Business label carried by condition["metadata"], e.g. {"bk_biz_id": "3"}."""
    metadata = condition.get(METADATA_FIELD)
    if not isinstance(metadata, dict):
        return {}
    label = metadata.get(LABEL_FIELD)
    if not isinstance(label, dict):
        return {}
    biz_id = label.get(BIZ_ID_FIELD)
    if biz_id in (None, ""):
        return {}
    return {BIZ_ID_FIELD: str(biz_id)}


def normalize_metadata(condition: dict[str, Any], label: dict[str, str]) -> dict[str, Any]:
    """Rewrite condition["metadata"] to its label-only form when present."""
    if METADATA_FIELD not in condition:
        return condition
    normalized = dict(condition)
    normalized[METADATA_FIELD] = {LABEL_FIELD: dict(label)}
    return normalized
