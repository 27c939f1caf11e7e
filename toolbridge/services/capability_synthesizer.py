"""Synthesize host-facing capabilities from the tool catalog.

Each cataloged tool becomes one Capability: a validation-guarded handler
plus description and optional descriptive metadata (similes, examples)
read from the provider's action-schema resource.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError as PydanticValidationError

from toolbridge.infra.errors import BridgeError, UnknownToolError
from toolbridge.infra.metrics import metadata_lookups_total
from toolbridge.models.capability import ConversationContext, DescriptiveMetadata, ExchangeTurn
from toolbridge.models.provider import ResourceTemplate
from toolbridge.models.tool import ToolDefinition
from toolbridge.services.schema_compiler import CompiledValidator
from toolbridge.services.tool_catalog import ToolCatalog

logger = logging.getLogger(__name__)

SCHEMA_URI_PREFIX = "file://elizaosactionschema/"


class ArgumentGenerator(Protocol):
    """Host-runtime hook producing argument values from the conversation."""

    async def generate_arguments(
        self,
        context: ConversationContext,
        tool: ToolDefinition,
        validator: CompiledValidator,
    ) -> Dict[str, Any]:
        ...


def render_result(result: Any) -> str:
    """Plain-text form of a tool result: strings unchanged, everything else JSON."""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


@dataclass(frozen=True)
class Capability:
    """Invocable wrapper around one cataloged tool."""
    name: str
    description: str
    similes: Tuple[str, ...]
    examples: Tuple[Tuple[ExchangeTurn, ...], ...]
    catalog: ToolCatalog = field(repr=False, compare=False)
    argument_generator: ArgumentGenerator = field(repr=False, compare=False)
    suppress_initial_message: bool = True

    async def validate(self, context: Optional[ConversationContext] = None) -> bool:
        """Whether the catalog currently has a live owner for this tool."""
        owner = self.catalog.get_owner(self.name)
        return owner is not None and bool(getattr(owner, "connected", True))

    async def invoke(
        self,
        context: Optional[ConversationContext] = None,
        callback: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> str:
        """
        Generate arguments from the context, run the tool, and render the result.

        Never raises; failures come back as "Failed to execute <tool>: <reason>".
        """
        context = context or ConversationContext()
        try:
            tool = self.catalog.get_tool(self.name)
            validator = self.catalog.get_validator(self.name)
            if tool is None or validator is None or self.catalog.get_owner(self.name) is None:
                raise UnknownToolError(self.name)

            generated = await self.argument_generator.generate_arguments(context, tool, validator)
            # Only declared properties are forwarded, whatever the generator invented
            declared = set(validator.fields)
            args = {key: value for key, value in (generated or {}).items() if key in declared}
            result = await self.catalog.invoke(self.name, args)
            text = render_result(result)
        except Exception as e:
            reason = e.message if isinstance(e, BridgeError) else str(e)
            logger.error(
                f"Error in {self.name} handler: {reason}",
                extra={
                    "tool_name": self.name,
                    "error_type": type(e).__name__,
                    "conversation_id": context.conversation_id,
                },
            )
            text = f"Failed to execute {self.name}: {reason}"

        if callback is not None:
            try:
                outcome = callback({"text": text})
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    f"Callback for {self.name} failed: {str(e)}",
                    extra={"tool_name": self.name, "error_type": type(e).__name__},
                )
        return text


class CapabilitySynthesizer:
    """Walks a ToolCatalog once and produces its Capability list."""

    def __init__(self, catalog: ToolCatalog, argument_generator: ArgumentGenerator):
        self.catalog = catalog
        self.argument_generator = argument_generator

    async def synthesize(self) -> List[Capability]:
        templates = await self._list_templates()
        has_schema_template = any(
            template.uri_template.startswith(SCHEMA_URI_PREFIX) for template in templates
        )

        capabilities = []
        for tool in self.catalog.list_tools():
            if has_schema_template:
                metadata = await self.get_metadata(tool.name)
            else:
                metadata_lookups_total.labels(status="no_template").inc()
                metadata = DescriptiveMetadata()
            capabilities.append(self.build_capability(tool, metadata))

        logger.info(
            "Synthesized capabilities",
            extra={"capabilities": [c.name for c in capabilities]},
        )
        return capabilities

    async def _list_templates(self) -> List[ResourceTemplate]:
        try:
            return await self.catalog.list_metadata_templates()
        except BridgeError as e:
            logger.warning(f"Failed to list resource templates: {str(e)}")
            return []

    async def get_metadata(self, tool_name: str) -> DescriptiveMetadata:
        """Descriptive metadata for a tool; empty when missing or malformed."""
        uri = f"{SCHEMA_URI_PREFIX}{tool_name}"
        try:
            payload = await self.catalog.read_resource(uri)
        except BridgeError as e:
            metadata_lookups_total.labels(status="missing").inc()
            logger.warning(f"No action schema found for tool {tool_name}: {str(e)}")
            return DescriptiveMetadata()

        if not isinstance(payload, dict):
            metadata_lookups_total.labels(status="missing").inc()
            logger.warning(f"Action schema for tool {tool_name} is not an object")
            return DescriptiveMetadata()

        try:
            metadata = DescriptiveMetadata.model_validate(payload)
        except PydanticValidationError as e:
            metadata_lookups_total.labels(status="missing").inc()
            logger.warning(f"Malformed action schema for tool {tool_name}: {e.error_count()} errors")
            return DescriptiveMetadata()

        metadata_lookups_total.labels(status="found").inc()
        return metadata

    def build_capability(self, tool: ToolDefinition, metadata: DescriptiveMetadata) -> Capability:
        return Capability(
            name=tool.name,
            description=tool.description,
            similes=tuple(metadata.similes),
            examples=tuple(tuple(exchange) for exchange in metadata.examples),
            catalog=self.catalog,
            argument_generator=self.argument_generator,
        )


async def synthesize_capabilities(
    catalog: ToolCatalog,
    argument_generator: ArgumentGenerator,
) -> List[Capability]:
    """Shortcut for CapabilitySynthesizer(catalog, argument_generator).synthesize()."""
    return await CapabilitySynthesizer(catalog, argument_generator).synthesize()
