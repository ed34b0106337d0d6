"""Store Association Guard: both association ends count, scoped by owner."""

from cmdb_core.services.association_guard import StoreAssociationGuard

from tests.services.fakes import TENANT_A, TENANT_B


async def _seed_association(seed):
    await seed("cc_InstAsst", {
        "bk_obj_id": "switch", "bk_inst_id": 5,
        "bk_asst_obj_id": "host", "bk_asst_inst_id": 1,
        "bk_supplier_account": "tenant-a",
    })


async def test_exists_for_either_end(store, seed):
    await _seed_association(seed)
    guard = StoreAssociationGuard(store)

    assert await guard.exists(TENANT_A, "host", 1)
    assert await guard.exists(TENANT_A, "switch", 5)
    assert not await guard.exists(TENANT_A, "host", 5)


async def test_exists_is_owner_scoped(store, seed):
    await _seed_association(seed)

    assert not await StoreAssociationGuard(store).exists(TENANT_B, "host", 1)


async def test_delete_all_removes_references(store, seed):
    await _seed_association(seed)
    guard = StoreAssociationGuard(store)

    assert await guard.delete_all(TENANT_A, "host", 1) == 1
    assert not await guard.exists(TENANT_A, "switch", 5)
