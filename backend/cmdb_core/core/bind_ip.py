"""Bind-IP Planning: pure decisions behind process bind address propagation.

Invariants:
    - All functions are PURE: no IO, no async, no store access
    - A kind (inner/outer) is planned only when its host field is present in the patch
    - A host is affected only when its PRE-update first address differs from the new one
    - An invalid host identity on an affected original raises ValueError

Design Decisions:
    - Plan first, query later: the propagator issues no store call for a kind with no affected host
"""

from dataclasses import dataclass, field
from typing import Any

from cmdb_core.core.domain_types import (
    BindIPSource,
    HOST_ID_FIELD,
    HOST_INNER_IP_FIELD,
    HOST_OUTER_IP_FIELD,
    PROCESS_ID_FIELD,
    PROCESS_TEMPLATE_ID_FIELD,
    TEMPLATE_ID_FIELD,
)
from cmdb_core.core.field_values import first_ip, to_int


HOST_IP_FIELDS: dict[BindIPSource, str] = {
    BindIPSource.INNER: HOST_INNER_IP_FIELD,
    BindIPSource.OUTER: HOST_OUTER_IP_FIELD,
}


@dataclass
class AddressChange:
    """New first address for one address kind and the hosts whose first address moved."""
    source: BindIPSource
    first_ip: str
    host_ids: list[int] = field(default_factory=list)


def plan_address_changes(
    patch: dict[str, Any], origins: list[dict[str, Any]], delimiter: str = ",",
) -> list[AddressChange]:
    """One AddressChange per address kind present in patch that affects at least one host."""
    changes = []
    for source, ip_field in HOST_IP_FIELDS.items():
        if ip_field not in patch:
            continue
        new_ip = first_ip(patch[ip_field], delimiter)
        host_ids = [
            to_int(origin.get(HOST_ID_FIELD))
            for origin in origins
            if first_ip(origin.get(ip_field), delimiter) != new_ip
        ]
        if host_ids:
            changes.append(AddressChange(source, new_ip, host_ids))
    return changes


def template_filter(template_ids: list[int], source: BindIPSource) -> dict[str, Any]:
    """Templates among template_ids whose bind_ip derives from the given host address."""
    return {
        TEMPLATE_ID_FIELD: {"$in": template_ids},
        "property.bind_ip.as_default_value": True,
        "property.bind_ip.value": source.value,
    }


def group_processes_by_template(relations: list[dict[str, Any]]) -> dict[int, list[int]]:
    """template id -> process ids, preserving relation order."""
    grouped: dict[int, list[int]] = {}
    for relation in relations:
        template_id = to_int(relation.get(PROCESS_TEMPLATE_ID_FIELD))
        grouped.setdefault(template_id, []).append(
            to_int(relation.get(PROCESS_ID_FIELD)),
        )
    return grouped


def select_process_ids(
    grouped: dict[int, list[int]], templates: list[dict[str, Any]],
) -> list[int]:
    """Process ids whose template survived the derive-from-host filter."""
    process_ids: list[int] = []
    for template in templates:
        process_ids.extend(grouped.get(to_int(template.get(TEMPLATE_ID_FIELD)), []))
    return process_ids
