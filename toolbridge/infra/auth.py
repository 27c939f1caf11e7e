"""API authentication for the catalog HTTP surface."""

import secrets
from typing import Optional
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader, APIKeyQuery

from toolbridge.infra.config import config

# API key header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
api_key_query = APIKeyQuery(name="api_key", auto_error=False)


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
    api_key_query_param: Optional[str] = Security(api_key_query),
) -> None:
    """
    Verify the API key when BRIDGE_API_KEY is configured.

    Supports both header (X-API-Key) and query parameter (api_key). With no
    BRIDGE_API_KEY set the surface is open.

    Raises:
        HTTPException: If API key is invalid or missing
    """
    expected = config.BRIDGE_API_KEY
    if not expected:
        return

    key = api_key or api_key_query_param
    if not key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Provide X-API-Key header or api_key query parameter.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
