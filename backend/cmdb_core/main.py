"""CMDB Instance API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CmdbError -> structured JSON responses
    - Database initialized (and schema created) on startup via lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cmdb_core.api.error_handlers import register_error_handlers
from cmdb_core.api.routes import health, instances
from cmdb_core.config import get_settings
from cmdb_core.infrastructure.database import init_db
from cmdb_core.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await manager.create_schema()
    logger.info("CMDB instance API started")
    yield
    await manager.dispose()
    logger.info("CMDB instance API shutting down")


app = FastAPI(
    title="CMDB Instance API", version="1.0.0", lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(instances.router)

register_error_handlers(app)
