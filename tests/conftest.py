"""Pytest configuration and fixtures."""

import pytest
import os
from unittest.mock import AsyncMock, MagicMock
from dotenv import load_dotenv

# Load test environment variables
load_dotenv()

# Set test environment
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("MCP_PROVIDERS", "[]")

from toolbridge.models.provider import ProviderConfig
from toolbridge.models.tool import ToolDefinition


def make_tool(name, properties=None, required=None, description=""):
    """Build a ToolDefinition from a raw tools/list style entry."""
    return ToolDefinition.from_raw({
        "name": name,
        "description": description,
        "inputSchema": {
            "type": "object",
            "properties": properties or {},
            "required": required or [],
        },
    })


def make_connection(url, tools=None, templates=None, resources=None, invoke_result=None):
    """
    Fake ProviderConnection.

    resources maps a URI to its decoded payload; any other URI raises
    ResourceNotFoundError like a real connection does.
    """
    from toolbridge.infra.errors import ResourceNotFoundError

    connection = MagicMock()
    connection.url = url
    connection.connected = True
    connection.connect = AsyncMock(return_value=connection)
    connection.list_tools = AsyncMock(return_value=list(tools or []))
    connection.list_metadata_templates = AsyncMock(return_value=list(templates or []))
    connection.invoke = AsyncMock(return_value=invoke_result)
    connection.close = AsyncMock()

    async def read_resource(uri):
        if resources and uri in resources:
            return resources[uri]
        raise ResourceNotFoundError(uri, reason="unknown resource")

    connection.read_resource = AsyncMock(side_effect=read_resource)
    return connection


@pytest.fixture
def provider_config():
    return ProviderConfig(url="https://tools.example.com/mcp", api_key="secret-key")


@pytest.fixture
def search_tool():
    return make_tool(
        "search",
        properties={"query": {"type": "string", "description": "Search terms"}},
        required=["query"],
        description="Search the web",
    )
