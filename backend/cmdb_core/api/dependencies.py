"""Request Dependencies: request context and service wiring for the instance routes.

Invariants:
    - Every request gets a RequestContext; tenant comes from X-Owner-Id (default owner when absent)
    - X-Request-Id is propagated when sent, generated otherwise
    - One SqlDocumentStore per request, shared by the service and its collaborators
"""

from uuid import uuid4

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from cmdb_core.config import get_settings
from cmdb_core.core.domain_types import RequestContext
from cmdb_core.infrastructure.database import get_db
from cmdb_core.infrastructure.document_store import SqlDocumentStore
from cmdb_core.services.association_guard import StoreAssociationGuard
from cmdb_core.services.attribute_validator import AttributeRuleValidator
from cmdb_core.services.instance_service import InstanceService


async def get_request_context(
    x_owner_id: str | None = Header(None),
    x_request_id: str | None = Header(None),
    accept_language: str | None = Header(None),
) -> RequestContext:
    settings = get_settings()
    locale = (accept_language or "en").split(",")[0].split(";")[0].strip() or "en"
    return RequestContext(
        owner_id=x_owner_id or settings.default_owner_id,
        request_id=x_request_id or uuid4().hex,
        locale=locale,
    )


async def get_instance_service(db: AsyncSession = Depends(get_db)) -> InstanceService:
    settings = get_settings()
    store = SqlDocumentStore(db)
    return InstanceService(
        store,
        AttributeRuleValidator(
            store, settings.default_owner_id, settings.super_owner_id,
        ),
        StoreAssociationGuard(store, settings.super_owner_id),
        default_owner_id=settings.default_owner_id,
        super_owner_id=settings.super_owner_id,
        ip_delimiter=settings.host_ip_delimiter,
    )
