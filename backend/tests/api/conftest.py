"""API test fixtures: httpx client over the FastAPI app with the test database.

Invariants:
    - get_db is overridden with the in-memory test session factory
    - db_manager points at the test engine so readiness checks see it
    - The lifespan never runs: no real database is touched
"""

import pytest
from httpx import ASGITransport, AsyncClient

from cmdb_core.infrastructure.database import get_db, DatabaseSessionManager
import cmdb_core.infrastructure.database as db_module
from cmdb_core.main import app


@pytest.fixture
async def client(test_engine, test_session_factory):
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def tenant_headers():
    return {"X-Owner-Id": "tenant-a", "X-Request-Id": "req-api"}
