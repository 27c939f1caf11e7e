"""API request/response models."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


# ============================================================================
# Tools Models
# ============================================================================

class ToolResponse(BaseModel):
    """Response model for a cataloged tool."""
    name: str
    description: str
    input_schema: Dict[str, Any] = Field(..., description="Declared input shape as a JSON schema")
    provider: Optional[str] = Field(None, description="URL of the owning provider")


class ToolListResponse(BaseModel):
    """Response model for listing tools."""
    items: List[ToolResponse]
    count: int


class InvokeToolRequest(BaseModel):
    """Request model for invoking a tool."""
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool argument bag")


class InvokeToolResponse(BaseModel):
    """Response model for a tool invocation."""
    tool_name: str
    provider: Optional[str] = None
    result: Any = None
    latency_ms: int = Field(..., description="Invocation latency in milliseconds")


# ============================================================================
# Resources Models
# ============================================================================

class ResourceTemplateResponse(BaseModel):
    """Response model for an advertised resource template."""
    uri_template: str
    name: str
    description: Optional[str] = None
    mime_type: Optional[str] = None


class ResourceTemplateListResponse(BaseModel):
    """Response model for listing resource templates."""
    items: List[ResourceTemplateResponse]
    count: int


class ResourceResponse(BaseModel):
    """Response model for a resource read."""
    uri: str
    payload: Any = None
