"""Resources API router."""

from fastapi import APIRouter, Depends, Query, Security

from toolbridge.api.models import (
    ResourceResponse,
    ResourceTemplateListResponse,
    ResourceTemplateResponse,
)
from toolbridge.api.utils import get_catalog, http_error
from toolbridge.infra.auth import verify_api_key
from toolbridge.infra.errors import BridgeError
from toolbridge.services.tool_catalog import ToolCatalog

router = APIRouter()


@router.get("/resource-templates", tags=["Resources"], response_model=ResourceTemplateListResponse)
async def list_resource_templates(
    catalog: ToolCatalog = Depends(get_catalog),
    _: None = Security(verify_api_key),
):
    """List the resource templates every provider advertises."""
    templates = await catalog.list_metadata_templates()
    items = [
        ResourceTemplateResponse(
            uri_template=t.uri_template,
            name=t.name,
            description=t.description,
            mime_type=t.mime_type,
        )
        for t in templates
    ]
    return ResourceTemplateListResponse(items=items, count=len(items))


@router.get("/resources", tags=["Resources"], response_model=ResourceResponse)
async def read_resource(
    uri: str = Query(..., description="Resource URI, e.g. file://elizaosactionschema/search"),
    catalog: ToolCatalog = Depends(get_catalog),
    _: None = Security(verify_api_key),
):
    """Read a resource from the first provider that resolves it."""
    try:
        payload = await catalog.read_resource(uri)
    except BridgeError as e:
        raise http_error(e)
    return ResourceResponse(uri=uri, payload=payload)
