"""Descriptive metadata and conversation context for synthesized capabilities."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ExchangeContent(BaseModel):
    """Content of one turn in an example exchange."""
    text: str = ""
    action: Optional[str] = None


class ExchangeTurn(BaseModel):
    """One turn of an example exchange."""
    user: str = Field(..., description="Speaker role, e.g. '{{user1}}' or the agent name")
    content: ExchangeContent


class DescriptiveMetadata(BaseModel):
    """Optional similes/examples describing how a tool is used conversationally."""
    similes: List[str] = Field(default_factory=list)
    examples: List[List[ExchangeTurn]] = Field(default_factory=list)


@dataclass
class ConversationContext:
    """The host runtime's view of the conversation a capability runs in."""
    recent_messages: str = ""
    conversation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
