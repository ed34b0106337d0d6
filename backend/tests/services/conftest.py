"""Service test fixtures: InstanceService over a real SQLite-backed store.

Invariants:
    - The validation gateway is a controllable fake (the rule engine is tested separately)
    - The association guard is the real StoreAssociationGuard over the same store
    - seed() inserts raw documents, bypassing the service
"""

import pytest

from cmdb_core.services.association_guard import StoreAssociationGuard
from cmdb_core.services.instance_service import InstanceService
from tests.services.fakes import FakeValidator, TENANT_A


@pytest.fixture
def ctx():
    return TENANT_A


@pytest.fixture
def validator():
    return FakeValidator()


@pytest.fixture
def association_guard(store):
    return StoreAssociationGuard(store)


@pytest.fixture
def service(store, validator, association_guard):
    return InstanceService(store, validator, association_guard)


@pytest.fixture
def seed(store):
    """Insert raw documents: await seed("cc_HostBase", {...}, {...})."""
    async def _seed(collection: str, *documents: dict):
        for document in documents:
            await store.insert(collection, document)
    return _seed
