"""Attribute Rule Validator: ValidationGateway driven by cc_ObjAttDes attribute descriptions.

Invariants:
    - Create: every isrequired attribute present and non-empty; described attributes type-checked
    - Update: patched attributes type-checked; non-editable ones only with can_edit_all;
      required ones never emptied
    - Identity, owner and bk_obj_id fields are never patchable
    - Attributes without a description are accepted unchecked

Design Decisions:
    - Attribute descriptions are looked up per call (owner-scoped, default owner included):
      the rule set changes at runtime and no cache invalidation exists here
"""

from typing import Any

from cmdb_core.core.domain_types import (
    RequestContext, ATTRIBUTE_COLLECTION, BIZ_ID_FIELD, OBJ_ID_FIELD, OWNER_FIELD,
)
from cmdb_core.core.errors import InstanceValidationError
from cmdb_core.core.field_values import to_int
from cmdb_core.core.owner_scope import extract_label, set_query_owner
from cmdb_core.core.repository_protocols import DocumentStore
from cmdb_core.core.table_router import resolve

_TYPE_CHECKS = {
    "singlechar": lambda v: isinstance(v, str),
    "longchar": lambda v: isinstance(v, str),
    "enum": lambda v: isinstance(v, str),
    "int": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "float": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "bool": lambda v: isinstance(v, bool),
}


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


class AttributeRuleValidator:
    """Validates instance payloads against the object's attribute descriptions."""

    def __init__(
        self,
        store: DocumentStore,
        default_owner_id: str = "0",
        super_owner_id: str = "superadmin",
    ):
        self.store = store
        self.default_owner_id = default_owner_id
        self.super_owner_id = super_owner_id

    async def _attributes(
        self, ctx: RequestContext, object_type: str, label: dict[str, str],
    ) -> dict[str, dict]:
        # global attributes carry no bk_biz_id (or 0); business ones only apply inside their label
        biz_ids: list[Any] = [None, 0]
        if BIZ_ID_FIELD in label:
            try:
                biz_ids.append(to_int(label[BIZ_ID_FIELD]))
            except ValueError:
                raise InstanceValidationError(
                    f"invalid business id in metadata label: {label[BIZ_ID_FIELD]!r}",
                    "metadata",
                ) from None
        rows = await self.store.find(
            ATTRIBUTE_COLLECTION,
            set_query_owner(
                {OBJ_ID_FIELD: object_type, BIZ_ID_FIELD: {"$in": biz_ids}},
                ctx.owner_id, self.default_owner_id, self.super_owner_id,
            ),
        )
        return {row["bk_property_id"]: row for row in rows if row.get("bk_property_id")}

    async def validate_create(
        self, ctx: RequestContext, object_type: str, data: dict[str, Any],
    ) -> None:
        attributes = await self._attributes(ctx, object_type, extract_label(data))
        for property_id, attribute in attributes.items():
            if attribute.get("isrequired") and _is_empty(data.get(property_id)):
                raise InstanceValidationError(
                    f"{property_id} is required", property_id,
                )
        self._check_types(data, attributes)

    async def validate_update(
        self,
        ctx: RequestContext,
        object_type: str,
        patch: dict[str, Any],
        label: dict[str, str],
        original: dict[str, Any],
        can_edit_all: bool,
    ) -> None:
        protected = {resolve(object_type).id_field, OWNER_FIELD, OBJ_ID_FIELD}
        for property_id in patch:
            if property_id in protected and patch[property_id] != original.get(property_id):
                raise InstanceValidationError(
                    f"{property_id} cannot be changed", property_id,
                )

        attributes = await self._attributes(ctx, object_type, label)
        for property_id, value in patch.items():
            attribute = attributes.get(property_id)
            if attribute is None:
                continue
            if not attribute.get("editable", True) and not can_edit_all:
                raise InstanceValidationError(
                    f"{property_id} is not editable", property_id,
                )
            if attribute.get("isrequired") and _is_empty(value):
                raise InstanceValidationError(
                    f"{property_id} is required", property_id,
                )
        self._check_types(patch, attributes)

    @staticmethod
    def _check_types(data: dict[str, Any], attributes: dict[str, dict]) -> None:
        for property_id, value in data.items():
            attribute = attributes.get(property_id)
            if attribute is None or value is None:
                continue
            check = _TYPE_CHECKS.get(attribute.get("bk_property_type", ""))
            if check is not None and not check(value):
                raise InstanceValidationError(
                    f"{property_id} must be of type {attribute['bk_property_type']}",
                    property_id,
                )
