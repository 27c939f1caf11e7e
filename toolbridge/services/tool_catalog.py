"""Tool catalog: single source of truth for tool name -> definition, validator, owner.

The catalog is also the only entry point for invocation. Each catalog owns
its maps; nothing is shared between instances.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from toolbridge.adapters.mcp_client import ProviderConnection
from toolbridge.infra.config import config
from toolbridge.infra.errors import (
    BridgeError,
    ConnectionError,
    InternalConsistencyError,
    InvocationError,
    ResourceNotFoundError,
    UnknownToolError,
    ValidationError,
    retry_with_backoff,
)
from toolbridge.infra.metrics import (
    provider_connect_total,
    provider_connections,
    tool_call_duration,
    tool_calls_total,
)
from toolbridge.models.provider import ProviderConfig, ResourceTemplate
from toolbridge.models.tool import ToolDefinition
from toolbridge.services.schema_compiler import CompiledValidator, SchemaCompiler, schema_compiler

logger = logging.getLogger(__name__)

# Caller-supplied names never become metric labels unless cataloged
UNKNOWN_TOOL_LABEL = "<unknown>"


class ToolCatalog:
    """
    Aggregates provider connections and routes tool invocations.

    Tool names are unique across the catalog. When a later provider
    advertises a name an earlier provider already registered, the later
    registration replaces owner, definition and validator (last wins).
    """

    def __init__(
        self,
        connection_factory: Optional[Callable[[ProviderConfig], ProviderConnection]] = None,
        compiler: Optional[SchemaCompiler] = None,
        connect_retries: Optional[int] = None,
        retry_delay: float = 1.0,
    ):
        self._connection_factory = connection_factory or ProviderConnection
        self._compiler = compiler or schema_compiler
        self._connect_retries = config.MCP_CONNECT_RETRIES if connect_retries is None else connect_retries
        self._retry_delay = retry_delay

        self._connections: List[ProviderConnection] = []
        self._tools: Dict[str, ToolDefinition] = {}
        self._owners: Dict[str, ProviderConnection] = {}
        self._validators: Dict[str, CompiledValidator] = {}
        self._merge_lock = asyncio.Lock()

    async def initialize(self, providers: Iterable[ProviderConfig]) -> "ToolCatalog":
        """
        Connect every configured provider, in order, and build the catalog.

        Any failure aborts initialization: connections made so far are
        closed and the error propagates.

        Raises:
            ValueError: If no providers are configured
            ConnectionError: If a provider cannot be connected or listed
        """
        providers = list(providers)
        if not providers:
            raise ValueError("No MCP providers configured")

        try:
            for provider in providers:
                await self.add_provider(provider)
        except Exception:
            await self.cleanup()
            raise

        logger.info(
            "Tool catalog initialized",
            extra={"providers": len(self._connections), "tools": len(self._tools)},
        )
        return self

    async def add_provider(self, provider: ProviderConfig) -> ProviderConnection:
        """Connect a provider and merge its tools into the catalog."""
        return await self.add_connection(self._connection_factory(provider))

    async def add_connection(self, connection: ProviderConnection) -> ProviderConnection:
        """
        Connect (if needed) an existing connection and merge its tools.

        Raises:
            ConnectionError: If connecting or listing tools fails
        """
        await self._connect(connection)

        try:
            tools = await connection.list_tools()
            # Compile everything before touching the maps
            staged = [(tool, self._compiler.compile(tool.input_schema)) for tool in tools]
        except Exception:
            await connection.close()
            raise

        async with self._merge_lock:
            self._connections.append(connection)
            for tool, validator in staged:
                previous = self._owners.get(tool.name)
                if previous is not None:
                    logger.warning(
                        f"Tool '{tool.name}' from {connection.url} replaces the one from {previous.url}",
                        extra={"tool_name": tool.name, "provider": connection.url, "replaced": previous.url},
                    )
                self._tools[tool.name] = tool
                self._validators[tool.name] = validator
                self._owners[tool.name] = connection

        provider_connections.inc()
        logger.info(
            "Registered MCP provider tools",
            extra={"provider": connection.url, "tools": [tool.name for tool, _ in staged]},
        )
        return connection

    async def _connect(self, connection: ProviderConnection) -> None:
        try:
            if self._connect_retries > 0:
                await retry_with_backoff(
                    connection.connect,
                    max_retries=self._connect_retries,
                    initial_delay=self._retry_delay,
                    retryable_exceptions=(ConnectionError,),
                )
            else:
                await connection.connect()
        except ConnectionError:
            provider_connect_total.labels(provider=connection.url, status="failure").inc()
            raise
        provider_connect_total.labels(provider=connection.url, status="success").inc()

    def list_tools(self) -> List[ToolDefinition]:
        """Snapshot of the cataloged tool definitions."""
        return list(self._tools.values())

    def get_tool(self, tool_name: str) -> Optional[ToolDefinition]:
        return self._tools.get(tool_name)

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def get_validator(self, tool_name: str) -> Optional[CompiledValidator]:
        return self._validators.get(tool_name)

    def get_owner(self, tool_name: str) -> Optional[ProviderConnection]:
        """Owning connection for a tool, or None."""
        return self._owners.get(tool_name)

    def get_tool_provider(self, tool_name: str) -> Optional[str]:
        """URL of the provider owning a tool, or None."""
        owner = self._owners.get(tool_name)
        return owner.url if owner is not None else None

    @property
    def connections(self) -> List[ProviderConnection]:
        return list(self._connections)

    async def list_metadata_templates(self) -> List[ResourceTemplate]:
        """
        Union of the resource templates every connection advertises.

        Connections whose listing fails are skipped.
        """
        templates: List[ResourceTemplate] = []
        for connection in list(self._connections):
            try:
                templates.extend(await connection.list_metadata_templates())
            except BridgeError as e:
                logger.warning(
                    f"Failed to list resource templates from {connection.url}: {str(e)}",
                    extra={"provider": connection.url},
                )
        return templates

    async def read_resource(self, uri: str) -> Any:
        """
        Read a resource from the first connection that can resolve it.

        Connections are tried in registration order.

        Raises:
            ResourceNotFoundError: If no connection resolves the URI
        """
        if not uri:
            raise ResourceNotFoundError(uri, reason="URI parameter is required")

        for connection in list(self._connections):
            try:
                return await connection.read_resource(uri)
            except BridgeError as e:
                logger.debug(
                    f"Provider {connection.url} could not read {uri}: {str(e)}",
                    extra={"provider": connection.url, "uri": uri},
                )
                continue

        raise ResourceNotFoundError(uri, reason="no provider could handle the URI")

    async def invoke(self, tool_name: str, raw_args: Optional[Dict[str, Any]] = None) -> Any:
        """
        Validate arguments and call the tool on its owning provider.

        Args:
            tool_name: Cataloged tool name
            raw_args: Argument bag; validated and normalized before the call

        Returns:
            The provider's result, unchanged

        Raises:
            UnknownToolError: If the tool is not cataloged or has no owner
            InternalConsistencyError: If a cataloged tool has no validator
            ValidationError: If the arguments are rejected (no remote call is made)
            InvocationError: If the remote call fails
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            tool_calls_total.labels(tool_name=UNKNOWN_TOOL_LABEL, provider="", status="unknown_tool").inc()
            raise UnknownToolError(tool_name)

        validator = self._validators.get(tool_name)
        if validator is None:
            logger.error(
                f"Tool '{tool_name}' is cataloged without a validator",
                extra={"tool_name": tool_name},
            )
            raise InternalConsistencyError(tool_name, "no compiled validator")

        owner = self._owners.get(tool_name)
        provider = owner.url if owner is not None else ""

        try:
            args = validator.validate(raw_args)
        except ValidationError as e:
            tool_calls_total.labels(tool_name=tool_name, provider=provider, status="validation_error").inc()
            e.with_tool(tool_name)
            raise

        if owner is None:
            tool_calls_total.labels(tool_name=tool_name, provider="", status="unknown_tool").inc()
            raise UnknownToolError(tool_name)

        start_time = time.time()
        try:
            result = await owner.invoke(tool_name, args)
        except InvocationError as e:
            tool_calls_total.labels(tool_name=tool_name, provider=provider, status="failure").inc()
            e.with_tool(tool_name)
            raise
        except BridgeError as e:
            tool_calls_total.labels(tool_name=tool_name, provider=provider, status="failure").inc()
            raise InvocationError(str(e), tool_name=tool_name, provider_url=provider) from e
        finally:
            tool_call_duration.labels(tool_name=tool_name, provider=provider).observe(time.time() - start_time)

        tool_calls_total.labels(tool_name=tool_name, provider=provider, status="success").inc()
        return result

    async def cleanup(self) -> None:
        """Close every connection and clear the catalog. Idempotent."""
        async with self._merge_lock:
            connections, self._connections = self._connections, []
            self._tools.clear()
            self._validators.clear()
            self._owners.clear()

        for connection in connections:
            try:
                await connection.close()
            except Exception as e:
                logger.warning(
                    f"Failed to close MCP provider {connection.url}: {str(e)}",
                    extra={"provider": connection.url},
                )
            provider_connections.dec()

    async def __aenter__(self) -> "ToolCatalog":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools
