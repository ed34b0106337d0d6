"""Bind-IP Propagation: host address changes flow into derived process bind addresses.

Tests cover:
    - inner address change rebinds processes whose template derives from inner ip
    - processes whose template does not derive (or derives from outer) are untouched
    - unchanged first address issues no relation/template query
    - propagation failure surfaces as BindIPPropagationError with the host write kept
"""

import pytest

from cmdb_core.core.errors import BindIPPropagationError, StorageError
from cmdb_core.services.bind_ip_propagator import BindIPPropagator
from cmdb_core.services.instance_service import InstanceService


def _template(template_id: int, derive: bool, value: str) -> dict:
    return {
        "id": template_id, "bk_supplier_account": "tenant-a",
        "property": {"bind_ip": {"as_default_value": derive, "value": value}},
    }


def _relation(host_id: int, process_id: int, template_id: int) -> dict:
    return {
        "bk_host_id": host_id, "bk_process_id": process_id,
        "bk_process_template_id": template_id, "bk_supplier_account": "tenant-a",
    }


def _process(process_id: int, bind_ip: str) -> dict:
    return {"bk_process_id": process_id, "bind_ip": bind_ip, "bk_supplier_account": "tenant-a"}


@pytest.fixture
async def topology(seed):
    """Host 1 at 10.0.0.1 with P1 (derives inner), P2 (fixed), P3 (derives outer)."""
    await seed("cc_HostBase", {
        "bk_host_id": 1, "bk_supplier_account": "tenant-a",
        "bk_host_innerip": "10.0.0.1", "bk_host_outerip": "1.1.1.1",
    })
    await seed(
        "cc_ProcessTemplate",
        _template(10, True, "3"), _template(20, False, "3"), _template(30, True, "4"),
    )
    await seed(
        "cc_ProcessInstanceRelation",
        _relation(1, 101, 10), _relation(1, 102, 20), _relation(1, 103, 30),
    )
    await seed(
        "cc_Process",
        _process(101, "10.0.0.1"), _process(102, "10.0.0.1"), _process(103, "1.1.1.1"),
    )


async def _bind_ips(store) -> dict[int, str]:
    return {p["bk_process_id"]: p["bind_ip"] for p in await store.find("cc_Process", {})}


async def test_inner_ip_change_rebinds_deriving_process(service, store, topology, ctx):
    await service.update(ctx, "host", {"bk_host_id": 1}, {"bk_host_innerip": "10.0.0.9"})

    assert await _bind_ips(store) == {101: "10.0.0.9", 102: "10.0.0.1", 103: "1.1.1.1"}


async def test_outer_ip_change_rebinds_outer_deriving_process(service, store, topology, ctx):
    await service.update(ctx, "host", {"bk_host_id": 1}, {"bk_host_outerip": ["2.2.2.2", "3.3.3.3"]})

    assert await _bind_ips(store) == {101: "10.0.0.1", 102: "10.0.0.1", 103: "2.2.2.2"}


async def test_multi_address_patch_binds_first_address(service, store, topology, ctx):
    await service.update(ctx, "host", {"bk_host_id": 1}, {"bk_host_innerip": "10.0.0.7,10.0.0.8"})

    assert (await _bind_ips(store))[101] == "10.0.0.7"


async def test_unchanged_first_address_issues_no_queries(store, validator, association_guard, topology, ctx):
    class CountingStore:
        def __init__(self, inner):
            self.inner = inner
            self.collections = []

        def __getattr__(self, name):
            return getattr(self.inner, name)

        async def find(self, collection, condition, **kwargs):
            self.collections.append(collection)
            return await self.inner.find(collection, condition, **kwargs)

    counting = CountingStore(store)
    service = InstanceService(counting, validator, association_guard)

    await service.update(ctx, "host", {"bk_host_id": 1}, {"bk_host_innerip": "10.0.0.1,10.0.0.5"})

    assert counting.collections == ["cc_HostBase"]
    assert (await _bind_ips(store))[101] == "10.0.0.1"


async def test_host_without_processes_is_a_no_op(service, store, seed, ctx):
    await seed("cc_HostBase", {"bk_host_id": 7, "bk_supplier_account": "tenant-a", "bk_host_innerip": "10.1.1.1"})

    count = await service.update(ctx, "host", {"bk_host_id": 7}, {"bk_host_innerip": "10.1.1.2"})

    assert count == 1


async def test_propagator_reports_rebound_count(store, topology, ctx):
    propagator = BindIPPropagator(store)
    origins = await store.find("cc_HostBase", {})

    updated = await propagator.propagate(
        ctx, {"bk_host_innerip": "10.0.0.9", "bk_host_outerip": "9.9.9.9"}, origins,
    )

    assert updated == 2


async def test_propagation_failure_keeps_host_write(store, validator, association_guard, topology, ctx):
    class BrokenPropagator(BindIPPropagator):
        async def propagate(self, ctx, patch, origins):
            raise StorageError("relation lookup failed", "find")

    service = InstanceService(
        store, validator, association_guard, propagator=BrokenPropagator(store),
    )

    with pytest.raises(BindIPPropagationError) as exc_info:
        await service.update(ctx, "host", {"bk_host_id": 1}, {"bk_host_innerip": "10.0.0.9"})

    error = exc_info.value
    assert error.updated_count == 1
    assert error.context.object_type == "host"
    assert isinstance(error.__cause__, StorageError)
    host = (await store.find("cc_HostBase", {}))[0]
    assert host["bk_host_innerip"] == "10.0.0.9"
    assert (await _bind_ips(store))[101] == "10.0.0.1"


async def test_invalid_host_identity_aborts_propagation(service, store, seed, ctx):
    await seed("cc_HostBase", {"bk_host_id": "x", "bk_supplier_account": "tenant-a", "bk_host_innerip": "10.0.0.1"})

    with pytest.raises(BindIPPropagationError):
        await service.update(ctx, "host", {"bk_host_innerip": "10.0.0.1"}, {"bk_host_innerip": "10.0.0.2"})


def test_empty_ip_delimiter_rejected_before_any_write(store, validator, association_guard):
    with pytest.raises(ValueError):
        BindIPPropagator(store, ip_delimiter="")
    with pytest.raises(ValueError):
        InstanceService(store, validator, association_guard, ip_delimiter="")
