"""
Pytest Configuration and Fixtures
"""

import json
from typing import Any, AsyncIterator, Dict, Iterable, Union

import pytest

from server.tools.base import BaseTool, ToolParameter
from server.tools.registry import CapabilityRegistry


class SearchTool(BaseTool):
    """Test tool with one required parameter."""

    name = "search"
    description = "Search the knowledge base"
    category = "information"
    parameters = {
        "query": ToolParameter(type="string", description="Search query", required=True),
        "limit": ToolParameter(type="integer", description="Max results", default=5),
    }

    def __init__(self):
        super().__init__()
        self.calls = []

    async def execute(self, params, context):
        self.calls.append((params, context))
        return {"query": params["query"], "results": ["a", "b"][: params.get("limit", 5)]}


class FailingTool(BaseTool):
    """Test tool that always raises."""

    name = "explode"
    description = "Always fails"

    async def execute(self, params, context):
        raise RuntimeError("kaboom")


@pytest.fixture
def registry() -> CapabilityRegistry:
    """Empty registry."""
    return CapabilityRegistry()


@pytest.fixture
def search_tool() -> SearchTool:
    return SearchTool()


@pytest.fixture
def failing_tool() -> FailingTool:
    return FailingTool()


def event_line(event_type: str, data: Any = None, **extra: Any) -> str:
    """One prefixed event line as the backend writes it."""
    payload: Dict[str, Any] = {"type": event_type, **extra}
    if data is not None:
        payload["data"] = data
    return f"data: {json.dumps(payload)}\n"


async def chunked(chunks: Iterable[Union[str, bytes]]) -> AsyncIterator[Union[str, bytes]]:
    """Async source yielding the given chunks."""
    for chunk in chunks:
        yield chunk


@pytest.fixture
def sample_curl_commands():
    """Curl commands exercised across tests."""
    return {
        "post_json": (
            'curl -X POST "https://api.example.com/users" '
            '-H "Content-Type: application/json" '
            """-d '{"name":"John"}'"""
        ),
        "query": 'curl "https://api.example.com/search?q=javascript&limit=10&offset=0"',
        "relative": "curl /api/users?page=2&flag",
    }


@pytest.fixture
def make_event():
    """Factory for prefixed event lines."""
    return event_line


@pytest.fixture
def make_source():
    """Factory for async chunk sources."""
    return chunked
