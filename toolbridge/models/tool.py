"""Canonical tool definition model."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PropertyKind(str, Enum):
    """Declared primitive type of a tool input property."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"  # accepts anything

    @classmethod
    def from_declared(cls, declared: Any) -> "PropertyKind":
        if isinstance(declared, str):
            try:
                kind = cls(declared.lower())
            except ValueError:
                return cls.UNKNOWN
            return kind
        return cls.UNKNOWN


class PropertySchema(BaseModel):
    """One declared input property, tagged by kind."""
    kind: PropertyKind = PropertyKind.UNKNOWN
    declared_type: Optional[str] = Field(None, description="Type string as sent by the provider")
    description: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_raw(cls, raw: Any) -> "PropertySchema":
        if not isinstance(raw, dict):
            return cls()
        declared = raw.get("type")
        return cls(
            kind=PropertyKind.from_declared(declared),
            declared_type=declared if isinstance(declared, str) else None,
            description=raw.get("description") if isinstance(raw.get("description"), str) else None,
        )


class InputSchema(BaseModel):
    """JSON-schema-like description of a tool's argument bag."""
    type: str = "object"
    properties: Dict[str, PropertySchema] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_raw(cls, raw: Any) -> "InputSchema":
        if not isinstance(raw, dict):
            return cls()
        properties = raw.get("properties") or {}
        required = raw.get("required") or []
        return cls(
            type=str(raw.get("type") or "object"),
            properties={
                str(name): PropertySchema.from_raw(prop)
                for name, prop in properties.items()
            } if isinstance(properties, dict) else {},
            required=[str(name) for name in required] if isinstance(required, list) else [],
        )

    @property
    def is_closed(self) -> bool:
        """Closed when at least one property is declared and every one is required."""
        return bool(self.properties) and set(self.properties) <= set(self.required)


class ToolDefinition(BaseModel):
    """A named, schema-described remote operation advertised by a provider."""
    name: str = Field(..., description="Tool name, unique across the whole catalog")
    description: str = Field("", description="Human-facing description")
    input_schema: InputSchema = Field(default_factory=InputSchema)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "ToolDefinition":
        """Build from a tools/list entry ({name, description, inputSchema})."""
        return cls(
            name=str(raw.get("name") or ""),
            description=str(raw.get("description") or ""),
            input_schema=InputSchema.from_raw(raw.get("inputSchema")),
        )
