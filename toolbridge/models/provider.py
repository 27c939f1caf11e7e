"""Provider configuration and advertised resource templates."""

from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_CLIENT_NAME = "mcp-client"
DEFAULT_CLIENT_VERSION = "1.0.0"


class ProviderConfig(BaseModel):
    """Connection settings for one remote tool provider (MCP server)."""
    url: str = Field(..., description="Provider endpoint: http(s):// or ws(s)://")
    api_key: Optional[SecretStr] = Field(None, description="Bearer credential sent on every request")
    name: Optional[str] = Field(None, description="Client name announced during the handshake")
    version: Optional[str] = Field(None, description="Client version announced during the handshake")

    model_config = ConfigDict(frozen=True)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https", "ws", "wss"):
            raise ValueError(
                f"Invalid MCP endpoint protocol for '{value}'. Must be http, https, ws, or wss."
            )
        if not parsed.netloc:
            raise ValueError(f"MCP endpoint '{value}' has no host")
        return value

    @property
    def transport(self) -> str:
        """'websocket' for ws(s):// endpoints, 'http' otherwise."""
        return "websocket" if self.url.startswith(("ws://", "wss://")) else "http"

    @property
    def client_name(self) -> str:
        return self.name or DEFAULT_CLIENT_NAME

    @property
    def client_version(self) -> str:
        return self.version or DEFAULT_CLIENT_VERSION

    def __repr__(self) -> str:
        # Never render credentials
        return f"ProviderConfig(url={self.url!r}, name={self.client_name!r})"


class ResourceTemplate(BaseModel):
    """A URI-shaped resource family a provider advertises."""
    uri_template: str = Field(..., alias="uriTemplate")
    name: str = ""
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    model_config = ConfigDict(frozen=True, populate_by_name=True)
