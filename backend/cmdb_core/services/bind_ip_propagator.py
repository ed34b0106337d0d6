"""Bind-IP Propagator: keeps process bind_ip in sync with the host address it derives from.

Invariants:
    - Runs after a host update, with the patch and the PRE-update originals
    - A kind (inner/outer) with no affected host issues no store call at all
    - Only processes whose template has property.bind_ip.as_default_value == true and the
      matching bind_ip.value ("3" inner, "4" outer) are rewritten
    - Any lookup or write failure propagates; nothing already written is reverted
    - An empty ip delimiter is rejected at construction, before any host write

Design Decisions:
    - Decisions live in core/bind_ip.py (pure); this class only sequences the store calls
"""

import logging
from typing import Any

from cmdb_core.core.bind_ip import (
    AddressChange,
    group_processes_by_template,
    plan_address_changes,
    select_process_ids,
    template_filter,
)
from cmdb_core.core.domain_types import (
    RequestContext,
    BIND_IP_FIELD,
    HOST_ID_FIELD,
    PROCESS_COLLECTION,
    PROCESS_ID_FIELD,
    PROCESS_INSTANCE_RELATION_COLLECTION,
    PROCESS_TEMPLATE_COLLECTION,
    PROCESS_TEMPLATE_ID_FIELD,
    TEMPLATE_ID_FIELD,
)
from cmdb_core.core.owner_scope import set_mod_owner, set_query_owner
from cmdb_core.core.repository_protocols import DocumentStore

logger = logging.getLogger(__name__)


class BindIPPropagator:
    """Rewrites bind_ip of processes bound to hosts whose first address changed."""

    def __init__(
        self,
        store: DocumentStore,
        default_owner_id: str = "0",
        super_owner_id: str = "superadmin",
        ip_delimiter: str = ",",
    ):
        self.store = store
        self.default_owner_id = default_owner_id
        self.super_owner_id = super_owner_id
        if not ip_delimiter:
            raise ValueError("ip_delimiter must not be empty")
        self.ip_delimiter = ip_delimiter

    async def propagate(
        self, ctx: RequestContext, patch: dict[str, Any], origins: list[dict[str, Any]],
    ) -> int:
        """Apply every planned address change. Returns the number of processes rewritten."""
        changes = plan_address_changes(patch, origins, self.ip_delimiter)
        updated = 0
        for change in changes:
            updated += await self._update_process_bind_ip(ctx, change)
        return updated

    async def _update_process_bind_ip(self, ctx: RequestContext, change: AddressChange) -> int:
        relations = await self.store.find(
            PROCESS_INSTANCE_RELATION_COLLECTION,
            self._query_scope(ctx, {HOST_ID_FIELD: {"$in": change.host_ids}}),
            fields=(HOST_ID_FIELD, PROCESS_ID_FIELD, PROCESS_TEMPLATE_ID_FIELD),
        )
        if not relations:
            return 0

        grouped = group_processes_by_template(relations)
        templates = await self.store.find(
            PROCESS_TEMPLATE_COLLECTION,
            self._query_scope(ctx, template_filter(list(grouped), change.source)),
            fields=(TEMPLATE_ID_FIELD,),
        )
        process_ids = select_process_ids(grouped, templates)
        if not process_ids:
            return 0

        count = await self.store.update(
            PROCESS_COLLECTION,
            set_mod_owner(
                {PROCESS_ID_FIELD: {"$in": process_ids}}, ctx.owner_id, self.super_owner_id,
            ),
            {BIND_IP_FIELD: change.first_ip},
        )
        logger.info(
            f"Rebound {count} process(es) to {change.first_ip} "
            f"after {change.source.name.lower()} ip change on hosts {change.host_ids}",
            extra={"request_id": ctx.request_id, "count": count},
        )
        return count

    def _query_scope(self, ctx: RequestContext, condition: dict[str, Any]) -> dict[str, Any]:
        return set_query_owner(
            condition, ctx.owner_id, self.default_owner_id, self.super_owner_id,
        )
