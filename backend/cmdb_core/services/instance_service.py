"""Instance Service: tenant-scoped CRUD orchestration for model instances.

Invariants:
    - Every read and write condition is owner-scoped before it reaches the store
    - Shared-collection operations always carry bk_obj_id == object_type; a caller
      bk_obj_id that contradicts it matches nothing (search returns an empty page)
    - Update validates the patch against a deep copy of EVERY original before the single
      bulk write; one rejection means no write at all
    - Update, delete and cascade delete matching zero instances raise InstanceNotFoundError
    - Delete removes nothing while any matched instance is still associated
    - Cascade delete removes associations first; a failure part-way leaves the
      associations already removed (no rollback)
    - create_many never aborts: per-item failures become ExceptionRecords, in item order
    - Every CmdbError leaving an operation carries request id, object type and condition

Design Decisions:
    - Per-object-type behaviour through resolve() routes and a post-update hook table,
      not scattered conditionals
    - Host update and bind ip propagation are not jointly atomic: a propagation failure
      is raised as BindIPPropagationError after the host write, which stays applied
"""

import copy
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterator, Sequence

from cmdb_core.core.domain_types import (
    InstanceId,
    ObjectType,
    RequestContext,
    CREATE_TIME_FIELD,
    LAST_TIME_FIELD,
    OBJ_ID_FIELD,
    OWNER_FIELD,
)
from cmdb_core.core.errors import (
    AssociationConflictError,
    BindIPPropagationError,
    CmdbError,
    ErrorContext,
    InstanceNotFoundError,
    StorageError,
)
from cmdb_core.core.field_values import to_int
from cmdb_core.core.instance_results import (
    CreateManyResult,
    CreateOneResult,
    ExceptionRecord,
    Page,
    QueryResult,
)
from cmdb_core.core.owner_scope import (
    extract_label, normalize_metadata, set_mod_owner, set_query_owner,
)
from cmdb_core.core.repository_protocols import (
    AssociationGuard, DocumentStore, ValidationGateway,
)
from cmdb_core.core.table_router import TableRoute, resolve
from cmdb_core.services.bind_ip_propagator import BindIPPropagator

logger = logging.getLogger(__name__)

PostUpdateHook = Callable[[RequestContext, dict[str, Any], list[dict[str, Any]]], Awaitable[Any]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InstanceService:
    """Create, update, search and delete model instances of any object type."""

    def __init__(
        self,
        store: DocumentStore,
        validator: ValidationGateway,
        association_guard: AssociationGuard,
        *,
        default_owner_id: str = "0",
        super_owner_id: str = "superadmin",
        ip_delimiter: str = ",",
        propagator: BindIPPropagator | None = None,
    ):
        self.store = store
        self.validator = validator
        self.association_guard = association_guard
        self.default_owner_id = default_owner_id
        self.super_owner_id = super_owner_id
        propagator = propagator or BindIPPropagator(
            store, default_owner_id, super_owner_id, ip_delimiter,
        )
        self._post_update_hooks: dict[str, PostUpdateHook] = {
            ObjectType.HOST.value: propagator.propagate,
        }

    # ─── Create ──────────────────────────────────────────────────

    async def create_one(
        self, ctx: RequestContext, object_type: str, data: dict[str, Any],
    ) -> CreateOneResult:
        item = self._with_owner(ctx, data)
        with self._annotate(ctx, object_type):
            await self.validator.validate_create(ctx, object_type, item)
            inst_id = await self._save(object_type, item)
        logger.info(
            f"Created {object_type} instance {inst_id}",
            extra={"request_id": ctx.request_id, "object_type": object_type},
        )
        return CreateOneResult(id=inst_id)

    async def create_many(
        self, ctx: RequestContext, object_type: str, items: Sequence[dict[str, Any]],
    ) -> CreateManyResult:
        result = CreateManyResult()
        for index, data in enumerate(items):
            item = self._with_owner(ctx, data)
            try:
                await self.validator.validate_create(ctx, object_type, item)
                inst_id = await self._save(object_type, item)
            except CmdbError as e:
                logger.warning(
                    f"Bulk create of {object_type} item {index} failed: {e.message}",
                    extra={
                        "request_id": ctx.request_id, "object_type": object_type,
                        "error_code": e.code, "origin_index": index,
                    },
                )
                result.exceptions.append(ExceptionRecord(
                    origin_index=index, message=e.message, code=e.code, data=item,
                ))
                continue
            result.created.append(inst_id)
        return result

    async def _save(self, object_type: str, item: dict[str, Any]) -> int:
        route = resolve(object_type)
        document = dict(item)
        inst_id = await self.store.next_sequence(route.collection)
        document[route.id_field] = inst_id
        if route.shared:
            document[OBJ_ID_FIELD] = object_type
        now = _now()
        document[CREATE_TIME_FIELD] = now
        document[LAST_TIME_FIELD] = now
        await self.store.insert(route.collection, document)
        return inst_id

    # ─── Update ──────────────────────────────────────────────────

    async def update(
        self,
        ctx: RequestContext,
        object_type: str,
        condition: dict[str, Any] | None,
        patch: dict[str, Any],
        can_edit_all: bool = False,
    ) -> int:
        """Apply patch to every instance matching condition. Returns the matched count."""
        route = resolve(object_type)
        scoped = self._mod_scope(ctx, route, object_type, condition)
        label = extract_label(scoped or {})
        if scoped is not None:
            scoped = normalize_metadata(scoped, label)

        with self._annotate(ctx, object_type, scoped or condition):
            origins = await self._load_originals(ctx, route, object_type, scoped, condition)
            for origin in origins:
                await self.validator.validate_update(
                    ctx, object_type, patch, label, copy.deepcopy(origin), can_edit_all,
                )

            data = dict(patch)
            data[LAST_TIME_FIELD] = _now()
            await self.store.update(route.collection, scoped, data)

            hook = self._post_update_hooks.get(object_type)
            if hook is not None:
                try:
                    await hook(ctx, patch, origins)
                except (CmdbError, ValueError) as e:
                    logger.error(
                        f"Post-update propagation for {object_type} failed: {e}",
                        extra={"request_id": ctx.request_id, "object_type": object_type},
                    )
                    raise BindIPPropagationError(
                        getattr(e, "message", str(e)), len(origins),
                    ) from e

        return len(origins)

    # ─── Search ──────────────────────────────────────────────────

    async def search(
        self,
        ctx: RequestContext,
        object_type: str,
        condition: dict[str, Any] | None = None,
        page: Page | None = None,
        fields: Sequence[str] = (),
    ) -> QueryResult:
        route = resolve(object_type)
        page = page or Page()
        condition = self._with_object_type(route, object_type, condition)
        if condition is None:
            logger.debug(
                f"Search condition bk_obj_id does not match {object_type}",
                extra={"request_id": ctx.request_id, "object_type": object_type},
            )
            return QueryResult()
        scoped = set_query_owner(
            condition, ctx.owner_id, self.default_owner_id, self.super_owner_id,
        )

        with self._annotate(ctx, object_type, scoped):
            info = await self.store.find(
                route.collection, scoped,
                start=page.start, limit=page.limit, sort=page.sort, fields=fields,
            )
            count = await self.store.count(route.collection, scoped)
        return QueryResult(count=count, info=info)

    # ─── Delete ──────────────────────────────────────────────────

    async def delete(
        self, ctx: RequestContext, object_type: str, condition: dict[str, Any] | None,
    ) -> int:
        """Delete matching instances unless any of them is still associated."""
        route = resolve(object_type)
        scoped = self._mod_scope(ctx, route, object_type, condition)

        with self._annotate(ctx, object_type, scoped or condition):
            origins = await self._load_originals(ctx, route, object_type, scoped, condition)
            for origin in origins:
                inst_id = self._instance_id(route, origin)
                if await self.association_guard.exists(ctx, object_type, inst_id):
                    logger.warning(
                        f"Delete of {object_type} {inst_id} blocked by associations",
                        extra={"request_id": ctx.request_id, "object_type": object_type},
                    )
                    raise AssociationConflictError(object_type, inst_id)
            count = await self.store.delete(route.collection, scoped)

        logger.info(
            f"Deleted {count} {object_type} instance(s)",
            extra={"request_id": ctx.request_id, "object_type": object_type, "count": count},
        )
        return count

    async def cascade_delete(
        self, ctx: RequestContext, object_type: str, condition: dict[str, Any] | None,
    ) -> int:
        """Delete matching instances together with every association referencing them."""
        route = resolve(object_type)
        scoped = self._mod_scope(ctx, route, object_type, condition)

        with self._annotate(ctx, object_type, scoped or condition):
            origins = await self._load_originals(ctx, route, object_type, scoped, condition)
            for origin in origins:
                inst_id = self._instance_id(route, origin)
                await self.association_guard.delete_all(ctx, object_type, inst_id)
            count = await self.store.delete(route.collection, scoped)

        logger.info(
            f"Cascade deleted {count} {object_type} instance(s)",
            extra={"request_id": ctx.request_id, "object_type": object_type, "count": count},
        )
        return count

    # ─── Helpers ─────────────────────────────────────────────────

    @staticmethod
    def _with_owner(ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
        item = dict(data)
        item[OWNER_FIELD] = ctx.owner_id
        return item

    @staticmethod
    def _with_object_type(
        route: TableRoute, object_type: str, condition: dict[str, Any] | None,
    ) -> dict[str, Any] | None:
        """Pin bk_obj_id on the shared collection; None when the caller's bk_obj_id contradicts it."""
        condition = dict(condition or {})
        if not route.shared:
            return condition
        if OBJ_ID_FIELD in condition and condition[OBJ_ID_FIELD] != object_type:
            return None
        condition[OBJ_ID_FIELD] = object_type
        return condition

    def _mod_scope(
        self, ctx: RequestContext, route: TableRoute, object_type: str,
        condition: dict[str, Any] | None,
    ) -> dict[str, Any] | None:
        pinned = self._with_object_type(route, object_type, condition)
        if pinned is None:
            return None
        return set_mod_owner(pinned, ctx.owner_id, self.super_owner_id)

    async def _load_originals(
        self, ctx: RequestContext, route: TableRoute, object_type: str,
        scoped: dict[str, Any] | None, condition: dict[str, Any] | None,
    ) -> list[dict[str, Any]]:
        """Instances a write targets; InstanceNotFoundError when there are none."""
        origins = await self.store.find(route.collection, scoped) if scoped is not None else []
        if not origins:
            logger.error(
                f"No {object_type} instance matches {scoped or condition}",
                extra={"request_id": ctx.request_id, "object_type": object_type},
            )
            raise InstanceNotFoundError(object_type)
        return origins

    @staticmethod
    def _instance_id(route: TableRoute, origin: dict[str, Any]) -> InstanceId:
        try:
            return InstanceId(to_int(origin.get(route.id_field)))
        except ValueError as e:
            raise StorageError(
                f"stored {route.id_field} is invalid: {e}", "decode",
                ErrorContext(debug_info={"collection": route.collection}),
            ) from e

    @contextmanager
    def _annotate(
        self, ctx: RequestContext, object_type: str, condition: dict[str, Any] | None = None,
    ) -> Iterator[None]:
        try:
            yield
        except CmdbError as e:
            e.context.request_id = e.context.request_id or ctx.request_id
            e.context.object_type = e.context.object_type or object_type
            if e.context.condition is None:
                e.context.condition = condition
            raise
