"""Store Association Guard: AssociationGuard backed by the cc_InstAsst collection.

Invariants:
    - An instance is referenced when it is either end of an association
      (bk_obj_id/bk_inst_id or bk_asst_obj_id/bk_asst_inst_id)
    - Reads and deletes are scoped to the caller's owner
"""

from typing import Any

from cmdb_core.core.domain_types import (
    RequestContext,
    ASSOCIATION_COLLECTION,
    ASST_INST_ID_FIELD,
    ASST_OBJ_ID_FIELD,
    INST_ID_FIELD,
    OBJ_ID_FIELD,
)
from cmdb_core.core.owner_scope import set_mod_owner
from cmdb_core.core.repository_protocols import DocumentStore


class StoreAssociationGuard:
    """Association checks and cleanup through the document store."""

    def __init__(self, store: DocumentStore, super_owner_id: str = "superadmin"):
        self.store = store
        self.super_owner_id = super_owner_id

    def _condition(self, ctx: RequestContext, object_type: str, inst_id: int) -> dict[str, Any]:
        return set_mod_owner(
            {
                "$or": [
                    {OBJ_ID_FIELD: object_type, INST_ID_FIELD: inst_id},
                    {ASST_OBJ_ID_FIELD: object_type, ASST_INST_ID_FIELD: inst_id},
                ],
            },
            ctx.owner_id,
            self.super_owner_id,
        )

    async def exists(self, ctx: RequestContext, object_type: str, inst_id: int) -> bool:
        count = await self.store.count(
            ASSOCIATION_COLLECTION, self._condition(ctx, object_type, inst_id),
        )
        return count > 0

    async def delete_all(self, ctx: RequestContext, object_type: str, inst_id: int) -> int:
        return await self.store.delete(
            ASSOCIATION_COLLECTION, self._condition(ctx, object_type, inst_id),
        )
