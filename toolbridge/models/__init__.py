from .provider import ProviderConfig, ResourceTemplate
from .tool import InputSchema, PropertyKind, PropertySchema, ToolDefinition
from .capability import ConversationContext, DescriptiveMetadata, ExchangeContent, ExchangeTurn

__all__ = [
    "ProviderConfig",
    "ResourceTemplate",
    "InputSchema",
    "PropertyKind",
    "PropertySchema",
    "ToolDefinition",
    "ConversationContext",
    "DescriptiveMetadata",
    "ExchangeContent",
    "ExchangeTurn",
]

