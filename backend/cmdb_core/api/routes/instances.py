"""Instance Routes: HTTP boundary for create, update, search and delete of model instances.

Invariants:
    - Every route is scoped by the RequestContext dependency (tenant, request id, locale)
    - Errors propagate as CmdbError and are shaped by api/error_handlers.py
"""

import logging

from fastapi import APIRouter, Depends, status

from cmdb_core.api.dependencies import get_instance_service, get_request_context
from cmdb_core.core.domain_types import RequestContext
from cmdb_core.schemas.instance import (
    CreateManyRequest,
    CreateOneRequest,
    DeleteRequest,
    SearchRequest,
    UpdateRequest,
)
from cmdb_core.services.instance_service import InstanceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/instances", tags=["instances"])


@router.post("/{object_type}", status_code=status.HTTP_201_CREATED)
async def create_instance(
    object_type: str,
    body: CreateOneRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: InstanceService = Depends(get_instance_service),
):
    result = await service.create_one(ctx, object_type, body.data)
    return result.to_dict()


@router.post("/{object_type}/many")
async def create_many_instances(
    object_type: str,
    body: CreateManyRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: InstanceService = Depends(get_instance_service),
):
    """Bulk create; per-item failures are reported, never raised."""
    result = await service.create_many(ctx, object_type, body.datas)
    return result.to_dict()


@router.put("/{object_type}")
async def update_instances(
    object_type: str,
    body: UpdateRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: InstanceService = Depends(get_instance_service),
):
    count = await service.update(
        ctx, object_type, body.condition, body.data, body.can_edit_all,
    )
    return {"count": count}


@router.post("/{object_type}/search")
async def search_instances(
    object_type: str,
    body: SearchRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: InstanceService = Depends(get_instance_service),
):
    result = await service.search(
        ctx, object_type, body.condition, body.page.to_page(), body.fields,
    )
    return result.to_dict()


@router.delete("/{object_type}")
async def delete_instances(
    object_type: str,
    body: DeleteRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: InstanceService = Depends(get_instance_service),
):
    """Delete; 409 while any matched instance is still associated."""
    count = await service.delete(ctx, object_type, body.condition)
    return {"count": count}


@router.delete("/{object_type}/cascade")
async def cascade_delete_instances(
    object_type: str,
    body: DeleteRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: InstanceService = Depends(get_instance_service),
):
    count = await service.cascade_delete(ctx, object_type, body.condition)
    return {"count": count}
