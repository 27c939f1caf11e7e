"""Tools API router: the catalog query surface over HTTP."""

import time
from fastapi import APIRouter, Depends, Security

from toolbridge.api.models import (
    InvokeToolRequest,
    InvokeToolResponse,
    ToolListResponse,
    ToolResponse,
)
from toolbridge.api.utils import get_catalog, http_error
from toolbridge.infra.auth import verify_api_key
from toolbridge.infra.errors import BridgeError, UnknownToolError
from toolbridge.services.tool_catalog import ToolCatalog

router = APIRouter()


def _tool_response(catalog: ToolCatalog, name: str) -> ToolResponse:
    tool = catalog.get_tool(name)
    validator = catalog.get_validator(name)
    return ToolResponse(
        name=tool.name,
        description=tool.description,
        input_schema=validator.json_schema() if validator is not None else {},
        provider=catalog.get_tool_provider(name),
    )


@router.get("/tools", tags=["Tools"], response_model=ToolListResponse)
async def list_tools(
    catalog: ToolCatalog = Depends(get_catalog),
    _: None = Security(verify_api_key),
):
    """List every cataloged tool with its input schema and owning provider."""
    items = [_tool_response(catalog, tool.name) for tool in catalog.list_tools()]
    return ToolListResponse(items=items, count=len(items))


@router.get("/tools/{tool_name}", tags=["Tools"], response_model=ToolResponse)
async def get_tool(
    tool_name: str,
    catalog: ToolCatalog = Depends(get_catalog),
    _: None = Security(verify_api_key),
):
    """Get one cataloged tool."""
    if not catalog.has_tool(tool_name):
        raise http_error(UnknownToolError(tool_name))
    return _tool_response(catalog, tool_name)


@router.post("/tools/{tool_name}/invoke", tags=["Tools"], response_model=InvokeToolResponse)
async def invoke_tool(
    tool_name: str,
    request: InvokeToolRequest,
    catalog: ToolCatalog = Depends(get_catalog),
    _: None = Security(verify_api_key),
):
    """
    Invoke a tool through the catalog.

    Arguments are validated against the tool's input schema before the
    provider is contacted.

    **Errors:**
    - 404: unknown tool
    - 422: arguments rejected (the body lists every offending field)
    - 502: the provider call failed
    """
    start_time = time.time()
    try:
        result = await catalog.invoke(tool_name, request.arguments)
    except BridgeError as e:
        raise http_error(e)

    return InvokeToolResponse(
        tool_name=tool_name,
        provider=catalog.get_tool_provider(tool_name),
        result=result,
        latency_ms=int((time.time() - start_time) * 1000),
    )
