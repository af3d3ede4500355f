"""
Shared fixtures for the asset chat tests.

FakeMCPClient stands in for the MCP server: it answers list_tools from a
fixed list of names and call_tool from canned responses, and records every
call so tests can assert on tool names and arguments.
"""
import json
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from asset_chat.assistant import AssetAssistant
from asset_chat.config import Settings
from asset_chat.models import CallToolResult, ListToolsResult, ToolInfo

Response = Union[CallToolResult, Exception, Callable[[Dict[str, Any]], Any]]


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[{"type": "text", "text": text}], is_error=is_error)


def json_result(data: Any) -> CallToolResult:
    return CallToolResult(content=[{"type": "json", "json": data}])


def json_text_result(data: Any) -> CallToolResult:
    return text_result(json.dumps(data))


class FakeMCPClient:
    def __init__(self, tools: Optional[List[str]] = None, responses: Optional[Dict[str, Any]] = None):
        self.tools = list(tools or [])
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[tuple] = []
        self.list_tools_calls = 0
        self.closed = 0

    async def list_tools(self) -> ListToolsResult:
        self.list_tools_calls += 1
        return ListToolsResult(tools=[ToolInfo(name=n) for n in self.tools])

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        self.calls.append((name, arguments))
        response = self.responses.get(name, CallToolResult())
        if isinstance(response, list):
            response = response.pop(0)
        if callable(response) and not isinstance(response, CallToolResult):
            response = response(arguments)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed += 1

    def called(self, name: str) -> List[Dict[str, Any]]:
        return [args for tool, args in self.calls if tool == name]


def fake_connection(client: FakeMCPClient):
    @asynccontextmanager
    async def factory():
        try:
            yield client
        finally:
            await client.close()

    return factory


@pytest.fixture
def settings():
    return Settings(_env_file=None, enable_ai_guide=False, openai_api_key="", tool_aliases_file=None)


@pytest.fixture
def fake_client():
    return FakeMCPClient()


@pytest.fixture
def assistant(settings, fake_client):
    return AssetAssistant(settings, connection_factory=fake_connection(fake_client))
