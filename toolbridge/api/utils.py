"""Shared helpers for API routers."""

from fastapi import HTTPException, Request

from toolbridge.infra.errors import (
    BridgeError,
    ConnectionError,
    InternalConsistencyError,
    InvocationError,
    ResourceNotFoundError,
    UnknownToolError,
    ValidationError,
)
from toolbridge.services.tool_catalog import ToolCatalog

ERROR_STATUS = [
    (UnknownToolError, 404),
    (ResourceNotFoundError, 404),
    (ValidationError, 422),
    (InvocationError, 502),
    (ConnectionError, 503),
    (InternalConsistencyError, 500),
]


def get_catalog(request: Request) -> ToolCatalog:
    """FastAPI dependency returning the app's tool catalog."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(status_code=503, detail="Tool catalog is not initialized")
    return catalog


def http_error(error: BridgeError) -> HTTPException:
    """Map a bridge error onto an HTTPException carrying its structured context."""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.to_dict())
    return HTTPException(status_code=500, detail=error.to_dict())
