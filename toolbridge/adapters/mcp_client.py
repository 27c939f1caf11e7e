"""MCP (Model Context Protocol) provider connection.

One ProviderConnection owns one long-lived session to one remote tool
provider. MCP uses JSON-RPC 2.0; HTTP (streamable HTTP, JSON or SSE
responses) and WebSocket transports are supported.
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Dict, List, Optional

import httpx
import websockets

from toolbridge.infra.config import config
from toolbridge.infra.errors import ConnectionError, InvocationError, ResourceNotFoundError
from toolbridge.models.provider import ProviderConfig, ResourceTemplate
from toolbridge.models.tool import ToolDefinition

logger = logging.getLogger(__name__)

METHOD_NOT_FOUND = -32601
SESSION_HEADER = "Mcp-Session-Id"
MAX_PAGES = 1000


class RpcFailure(Exception):
    """Transport or JSON-RPC level failure. Translated by ProviderConnection."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


def _auth_headers(provider: ProviderConfig) -> Dict[str, str]:
    # SECURITY: Never log secrets or tokens
    token = provider.api_key.get_secret_value() if provider.api_key is not None else ""
    if token:
        return {"Authorization": f"Bearer {token}"}
    return {}


def _unwrap(message: Any) -> Any:
    """Return the result of a JSON-RPC response or raise RpcFailure."""
    if not isinstance(message, dict):
        raise RpcFailure("Invalid JSON-RPC response")
    if message.get("error"):
        error = message["error"]
        if isinstance(error, dict):
            raise RpcFailure(
                f"{error.get('message', 'Unknown error')} (code: {error.get('code', 'unknown')})",
                code=error.get("code"),
            )
        raise RpcFailure(str(error))
    return message.get("result")


class ProviderTransport:
    """Reliable, ordered request/response channel to one provider."""

    def __init__(self, provider: ProviderConfig, timeout: float):
        self.provider = provider
        self.timeout = timeout
        self._ids = itertools.count(1)

    def _envelope(self, method: str, params: Optional[Dict[str, Any]], with_id: bool = True) -> Dict[str, Any]:
        body: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if with_id:
            body["id"] = next(self._ids)
        if params is not None:
            body["params"] = params
        return body

    async def open(self) -> None:
        raise NotImplementedError

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        raise NotImplementedError

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError


class HttpTransport(ProviderTransport):
    """MCP streamable HTTP transport over httpx."""

    def __init__(self, provider: ProviderConfig, timeout: float):
        super().__init__(provider, timeout)
        self._client: Optional[httpx.AsyncClient] = None
        self.session_id: Optional[str] = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        headers.update(_auth_headers(self.provider))
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        return headers

    async def _post(self, body: Dict[str, Any]) -> httpx.Response:
        if self._client is None:
            raise RpcFailure("Transport is not open")
        try:
            response = await self._client.post(
                self.provider.url,
                json=body,
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RpcFailure(f"MCP HTTP request failed: {str(e)}")

        session_id = response.headers.get(SESSION_HEADER)
        if session_id:
            self.session_id = session_id
        return response

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        body = self._envelope(method, params)
        response = await self._post(body)

        content_type = response.headers.get("content-type", "") or ""
        if content_type.startswith("text/event-stream"):
            return _unwrap(self._from_event_stream(response.text, body["id"]))
        try:
            return _unwrap(response.json())
        except json.JSONDecodeError as e:
            raise RpcFailure(f"MCP response parsing failed: {str(e)}")

    @staticmethod
    def _from_event_stream(text: str, request_id: Any) -> Dict[str, Any]:
        """Pick the JSON-RPC response for request_id out of an SSE body."""
        for line in text.splitlines():
            if not line.startswith("data:"):
                continue
            try:
                message = json.loads(line[len("data:"):].strip())
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("id") == request_id:
                return message
        raise RpcFailure(f"No response for request {request_id} in event stream")

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        await self._post(self._envelope(method, params, with_id=False))

    async def close(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()


class WebSocketTransport(ProviderTransport):
    """MCP over a single WebSocket; one request in flight at a time."""

    def __init__(self, provider: ProviderConfig, timeout: float):
        super().__init__(provider, timeout)
        self._ws = None
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        try:
            self._ws = await websockets.connect(
                self.provider.url,
                additional_headers=_auth_headers(self.provider),
                subprotocols=["mcp"],
                open_timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise RpcFailure(f"MCP WebSocket connection failed: {str(e)}")

    async def _send(self, body: Dict[str, Any]) -> None:
        if self._ws is None:
            raise RpcFailure("Transport is not open")
        try:
            await self._ws.send(json.dumps(body))
        except websockets.exceptions.WebSocketException as e:
            raise RpcFailure(f"MCP WebSocket send failed: {str(e)}")

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        body = self._envelope(method, params)
        async with self._lock:
            await self._send(body)
            while True:
                try:
                    raw = await asyncio.wait_for(self._ws.recv(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    raise RpcFailure("MCP WebSocket request timed out")
                except websockets.exceptions.WebSocketException as e:
                    raise RpcFailure(f"MCP WebSocket receive failed: {str(e)}")

                try:
                    message = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise RpcFailure(f"MCP response parsing failed: {str(e)}")

                # Server notifications and stale responses are skipped
                if isinstance(message, dict) and message.get("id") == body["id"]:
                    return _unwrap(message)

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        async with self._lock:
            await self._send(self._envelope(method, params, with_id=False))

    async def close(self) -> None:
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()


def build_transport(provider: ProviderConfig, timeout: float) -> ProviderTransport:
    if provider.transport == "websocket":
        return WebSocketTransport(provider, timeout)
    return HttpTransport(provider, timeout)


class ProviderConnection:
    """Session with one remote tool provider.

    Nothing is cached here; every list call goes to the provider.
    """

    def __init__(
        self,
        provider: ProviderConfig,
        timeout: Optional[float] = None,
        transport: Optional[ProviderTransport] = None,
    ):
        self.config = provider
        self.timeout = config.MCP_REQUEST_TIMEOUT if timeout is None else timeout
        self._transport = transport or build_transport(provider, self.timeout)
        self._connected = False
        self._closed = False
        self.server_info: Dict[str, Any] = {}
        self.server_capabilities: Dict[str, Any] = {}

    @property
    def url(self) -> str:
        return self.config.url

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> "ProviderConnection":
        """
        Open the transport and perform the MCP initialize handshake.

        Calling connect() on an already connected instance is a no-op.

        Raises:
            ConnectionError: If the provider is unreachable, the handshake
                fails, or the connection was already closed
        """
        if self._connected:
            return self
        if self._closed:
            raise ConnectionError("Connection already closed", provider_url=self.url)

        try:
            await self._transport.open()
            result = await self._transport.request(
                "initialize",
                {
                    "protocolVersion": config.MCP_PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {
                        "name": self.config.client_name,
                        "version": self.config.client_version,
                    },
                },
            )
            await self._transport.notify("notifications/initialized")
        except RpcFailure as e:
            await self._safe_close_transport()
            raise ConnectionError(
                f"Failed to connect to MCP provider {self.url}: {str(e)}",
                provider_url=self.url,
            )

        if isinstance(result, dict):
            self.server_info = dict(result.get("serverInfo") or {})
            self.server_capabilities = dict(result.get("capabilities") or {})
        self._connected = True

        logger.info(
            "Connected to MCP provider",
            extra={"provider_url": self.url, "server": self.server_info.get("name")},
        )
        return self

    def _require_connected(self) -> None:
        if not self._connected:
            raise ConnectionError("Provider connection is not established", provider_url=self.url)

    async def _paginate(self, method: str, key: str, fallback_key: Optional[str] = None) -> List[Any]:
        items: List[Any] = []
        cursor = None
        seen = set()
        for _ in range(MAX_PAGES):
            result = await self._transport.request(method, {"cursor": cursor} if cursor else {})
            if not isinstance(result, dict):
                return items
            page = result.get(key)
            if page is None and fallback_key:
                page = result.get(fallback_key)
            if isinstance(page, list):
                items.extend(page)
            cursor = result.get("nextCursor")
            if not cursor:
                return items
            if not isinstance(cursor, str) or cursor in seen:
                raise RpcFailure(f"{method} repeated cursor {cursor!r}")
            seen.add(cursor)
        raise RpcFailure(f"{method} exceeded {MAX_PAGES} pages")

    async def list_tools(self) -> List[ToolDefinition]:
        """
        Query the provider's tool list.

        Raises:
            ConnectionError: If the provider cannot be queried
        """
        self._require_connected()
        try:
            raw_tools = await self._paginate("tools/list", "tools")
        except RpcFailure as e:
            raise ConnectionError(f"Failed to list tools from {self.url}: {str(e)}", provider_url=self.url)

        return [
            ToolDefinition.from_raw(tool)
            for tool in raw_tools
            if isinstance(tool, dict) and tool.get("name")
        ]

    async def list_metadata_templates(self) -> List[ResourceTemplate]:
        """
        Query the resource templates the provider advertises.

        Providers without resource support yield an empty list.
        """
        self._require_connected()
        if self.server_capabilities and "resources" not in self.server_capabilities:
            return []
        try:
            raw_templates = await self._paginate(
                "resources/templates/list", "resourceTemplates", fallback_key="templates"
            )
        except RpcFailure as e:
            if e.code == METHOD_NOT_FOUND:
                return []
            raise ConnectionError(
                f"Failed to list resource templates from {self.url}: {str(e)}",
                provider_url=self.url,
            )

        return [
            ResourceTemplate.model_validate(template)
            for template in raw_templates
            if isinstance(template, dict) and template.get("uriTemplate")
        ]

    async def read_resource(self, uri: str) -> Any:
        """
        Read a resource by URI.

        Returns:
            The decoded JSON of the first text content item when it parses as
            JSON, otherwise the raw result

        Raises:
            ResourceNotFoundError: If the provider cannot resolve the URI
        """
        if not uri:
            raise ResourceNotFoundError(uri, reason="URI parameter is required")
        if not self._connected:
            raise ResourceNotFoundError(uri, reason="provider not connected")
        try:
            result = await self._transport.request("resources/read", {"uri": uri})
        except RpcFailure as e:
            raise ResourceNotFoundError(uri, reason=str(e))

        if result is None:
            raise ResourceNotFoundError(uri, reason="empty response")

        contents = result.get("contents") if isinstance(result, dict) else None
        if isinstance(contents, list) and contents:
            first = contents[0]
            if isinstance(first, dict) and isinstance(first.get("text"), str):
                try:
                    return json.loads(first["text"])
                except json.JSONDecodeError:
                    return result
        return result

    async def invoke(self, tool_name: str, args: Dict[str, Any]) -> Any:
        """
        Call a tool on the provider.

        Raises:
            InvocationError: If the call fails or the provider flags an error result
        """
        if not self._connected:
            raise InvocationError(
                "Provider connection is not established",
                tool_name=tool_name,
                provider_url=self.url,
            )
        try:
            result = await self._transport.request(
                "tools/call",
                {"name": tool_name, "arguments": args},
            )
        except RpcFailure as e:
            raise InvocationError(
                f"MCP tool execution failed: {str(e)}",
                tool_name=tool_name,
                provider_url=self.url,
                code=e.code,
            )

        if isinstance(result, dict) and result.get("isError"):
            raise InvocationError(
                f"MCP tool execution failed: {_content_text(result) or 'provider reported an error'}",
                tool_name=tool_name,
                provider_url=self.url,
            )
        return result

    async def _safe_close_transport(self) -> None:
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning(f"Failed to close MCP transport for {self.url}: {str(e)}")

    async def close(self) -> None:
        """Close the session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._connected = False
        await self._safe_close_transport()

    def __repr__(self) -> str:
        return f"ProviderConnection(url={self.url!r}, connected={self._connected})"


def _content_text(result: Dict[str, Any]) -> str:
    """Join the text items of an MCP content list."""
    content = result.get("content")
    if not isinstance(content, list):
        return ""
    return "\n".join(
        item["text"]
        for item in content
        if isinstance(item, dict) and isinstance(item.get("text"), str)
    )
