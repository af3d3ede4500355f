"""Clients for the asset-management MCP server.

Two transports share one small interface (``list_tools``, ``call_tool``,
``close``):

* ``SSEMCPClient`` speaks the real MCP protocol through the official SDK,
  e.g. against Cloudinary's hosted servers or a local stdio->SSE gateway.
* ``HTTPMCPClient`` talks to a plain HTTP bridge exposing ``GET /tools`` and
  ``POST /tools/call``.

Use ``connect()`` so the session is always closed, whatever happens inside.
"""

import logging
import re
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from mcp import ClientSession
from mcp.client.sse import sse_client

from asset_chat.config import Settings, get_settings
from asset_chat.errors import MCPConnectionError
from asset_chat.models import CallToolResult, ListToolsResult, ToolContentPart, ToolInfo

logger = logging.getLogger(__name__)

CLOUDINARY_SERVERS = {
    "asset-management": "https://mcp.cloudinary.com/asset-management/sse",
    "env-config": "https://mcp.cloudinary.com/env-config/sse",
    "smd": "https://mcp.cloudinary.com/smd/sse",
    "analysis": "https://mcp.cloudinary.com/analysis/sse",
}


def mask_url(url: str) -> str:
    """Hide credentials embedded in a URL before logging it"""
    return re.sub(r"://[^:/@]+:([^@]+)@", "://***@", url)


def server_url(name: str) -> str:
    try:
        return CLOUDINARY_SERVERS[name]
    except KeyError:
        raise MCPConnectionError(f"Unknown server: {name}")


def _to_part(item: Any) -> ToolContentPart:
    """SDK content object to a plain content-part dict"""
    if isinstance(item, dict):
        return item
    if getattr(item, "type", None) == "text":
        return {"type": "text", "text": item.text}
    if hasattr(item, "model_dump"):
        return item.model_dump()
    return {"type": str(getattr(item, "type", "unknown"))}


class SSEMCPClient:
    """MCP session over SSE using the official SDK"""

    def __init__(self, url: str):
        self.url = url
        self.exit_stack = AsyncExitStack()
        self.session: Optional[ClientSession] = None

    async def connect(self):
        logger.info("Connecting to MCP server at %s", mask_url(self.url))
        read, write = await self.exit_stack.enter_async_context(sse_client(self.url))
        self.session = await self.exit_stack.enter_async_context(ClientSession(read, write))
        await self.session.initialize()

    def _require_session(self) -> ClientSession:
        if self.session is None:
            raise MCPConnectionError("MCP session is not connected")
        return self.session

    async def list_tools(self) -> ListToolsResult:
        result = await self._require_session().list_tools()
        return ListToolsResult(tools=[
            ToolInfo(name=tool.name, description=tool.description) for tool in result.tools
        ])

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        result = await self._require_session().call_tool(name, arguments)
        content = [_to_part(item) for item in result.content or []]
        structured = getattr(result, "structuredContent", None)
        if isinstance(structured, dict):
            content.append({"type": "json", "json": structured})
        return CallToolResult(content=content, is_error=bool(result.isError))

    async def close(self):
        self.session = None
        await self.exit_stack.aclose()


class HTTPMCPClient:
    """Client for a simple HTTP tool bridge"""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 30.0,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    async def connect(self):
        logger.info("Using HTTP tool bridge at %s", mask_url(self.base_url))

    async def list_tools(self) -> ListToolsResult:
        response = await self.client.get(f"{self.base_url}/tools")
        response.raise_for_status()
        data = response.json()
        tools = data.get("tools", []) if isinstance(data, dict) else data
        return ListToolsResult(tools=[
            ToolInfo(name=tool["name"], description=tool.get("description"))
            for tool in tools
            if isinstance(tool, dict) and isinstance(tool.get("name"), str)
        ])

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        payload = {
            "name": name,
            "arguments": arguments
        }
        response = await self.client.post(f"{self.base_url}/tools/call", json=payload)
        response.raise_for_status()
        result = response.json()
        return CallToolResult(
            content=[p for p in result.get("content") or [] if isinstance(p, dict)],
            is_error=bool(result.get("isError") or result.get("is_error")),
        )

    async def close(self):
        await self.client.aclose()


def create_client(settings: Settings):
    if settings.mcp_transport == "http":
        return HTTPMCPClient(settings.mcp_http_url, timeout=settings.call_timeout_seconds)
    if settings.mcp_transport == "sse":
        return SSEMCPClient(settings.mcp_sse_url or server_url(settings.mcp_server_name))
    raise MCPConnectionError(f"Unknown MCP transport: {settings.mcp_transport}")


@asynccontextmanager
async def connect(settings: Optional[Settings] = None) -> AsyncIterator[Any]:
    """Open a client for one request and close it on every exit path"""
    settings = settings or get_settings()
    client = create_client(settings)
    try:
        try:
            await client.connect()
        except Exception as e:
            raise MCPConnectionError(f"Failed to connect to MCP server: {e}") from e
        yield client
    finally:
        await client.close()
