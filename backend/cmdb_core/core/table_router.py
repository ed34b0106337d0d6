"""Table Router: maps an object type to its storage collection and identity field.

Invariants:
    - resolve() is total: unknown object types fall back to the shared generic collection
    - Pure and deterministic: same object type, same TableRoute, no IO
    - Only the generic collection is shared; its documents are keyed additionally by bk_obj_id
"""

from dataclasses import dataclass

from cmdb_core.core.domain_types import ObjectType, INST_ID_FIELD, HOST_ID_FIELD, PROCESS_ID_FIELD


GENERIC_INSTANCE_COLLECTION = "cc_ObjectBase"


@dataclass(frozen=True)
class TableRoute:
    """Storage target for one object type."""
    collection: str
    id_field: str
    shared: bool = False


_ROUTES: dict[str, TableRoute] = {
    ObjectType.HOST.value: TableRoute("cc_HostBase", HOST_ID_FIELD),
    ObjectType.BIZ.value: TableRoute("cc_ApplicationBase", "bk_biz_id"),
    ObjectType.SET.value: TableRoute("cc_SetBase", "bk_set_id"),
    ObjectType.MODULE.value: TableRoute("cc_ModuleBase", "bk_module_id"),
    ObjectType.PLAT.value: TableRoute("cc_PlatBase", "bk_cloud_id"),
    ObjectType.PROCESS.value: TableRoute("cc_Process", PROCESS_ID_FIELD),
}

_GENERIC_ROUTE = TableRoute(GENERIC_INSTANCE_COLLECTION, INST_ID_FIELD, shared=True)


def resolve(object_type: str) -> TableRoute:
    """Return the collection and identity field that store object_type instances."""
    return _ROUTES.get(object_type, _GENERIC_ROUTE)
