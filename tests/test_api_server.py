"""
Tests for the API Server
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from api_client.backend_client import BackendClient
from server.api_server import create_app
from server.config import ServerConfig
from server.tools.registry import CapabilityRegistry


@pytest.fixture
def app_registry(search_tool, failing_tool):
    registry = CapabilityRegistry()
    registry.register(search_tool)
    registry.register(failing_tool)
    return registry


@pytest.fixture
def client(app_registry):
    backend = BackendClient(
        base_url="http://backend",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
    )
    app = create_app(registry=app_registry, config=ServerConfig(), backend=backend)
    with TestClient(app) as test_client:
        yield test_client


class TestHealthAndTools:
    """Tests for read-only endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["tools_loaded"] == 2

    def test_list_tools(self, client):
        tools = client.get("/tools").json()["tools"]

        assert {tool["function"]["name"] for tool in tools} == {"search", "explode"}

    def test_stats(self, client):
        stats = client.get("/tools/stats").json()

        assert stats["total_tools"] == 2
        assert stats["total_executions"] == 0

    def test_metrics(self, client):
        client.post("/tool/search", json={"params": {"query": "q"}})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "panel_tool_executions_total" in response.text

    def test_default_app_has_builtin_tools(self):
        app = create_app(config=ServerConfig())
        with TestClient(app) as test_client:
            names = {tool["function"]["name"] for tool in test_client.get("/tools").json()["tools"]}

        assert names == {"calculate", "parse_curl", "api_request"}


class TestExecuteEndpoints:
    """Tests for tool execution over HTTP."""

    def test_execute_tool(self, client):
        response = client.post("/tool/search", json={"params": {"query": "docs"}})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["query"] == "docs"
        assert body["toolName"] == "search"
        assert body["executionId"].startswith("exec_")

    def test_tool_failure_is_envelope(self, client):
        body = client.post("/tool/explode", json={}).json()

        assert body["success"] is False
        assert body["error"] == "kaboom"
        assert body["errorType"] == "RuntimeError"

    def test_validation_failure_is_envelope(self, client):
        response = client.post("/tool/search", json={"params": {}})

        assert response.status_code == 200
        assert response.json()["errorType"] == "ToolValidationError"

    def test_unknown_tool_404(self, client):
        response = client.post("/tool/nope", json={})

        assert response.status_code == 404
        assert response.json()["detail"] == "Tool nope not found"

    def test_generic_execute(self, client):
        response = client.post("/execute", json={"tool_name": "search", "params": {"query": "q"}})

        assert response.json()["success"] is True

    def test_generic_execute_requires_name(self, client):
        assert client.post("/execute", json={"params": {}}).status_code == 422

    def test_tool_calls(self, client):
        response = client.post(
            "/tool-calls",
            json={
                "tool_calls": [
                    {"id": "a", "function": {"name": "search", "arguments": json.dumps({"query": "x"})}},
                    {"id": "b", "function": {"name": "explode", "arguments": "{}"}},
                ]
            },
        )

        results = response.json()["results"]
        assert [r["id"] for r in results] == ["a", "b"]
        assert [r["success"] for r in results] == [True, False]

    def test_history_endpoints(self, client):
        client.post("/tool/search", json={"params": {"query": "q"}})
        client.post("/tool/explode", json={})

        history = client.get("/tools/history", params={"status": "error"}).json()["history"]
        assert [record["toolName"] for record in history] == ["explode"]

        assert client.delete("/tools/history").json() == {"cleared": True}
        assert client.get("/tools/history").json()["history"] == []


class TestCurlEndpoints:
    """Tests for the curl parsing endpoints."""

    def test_parse_curl(self, client, sample_curl_commands):
        response = client.post(
            "/api-client/parse-curl", json={"command": sample_curl_commands["query"]}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["url"] == "https://api.example.com/search"
        assert body["params"] == {"q": "javascript", "limit": "10", "offset": "0"}
        assert body["bodyType"] == "json"

    def test_parse_curl_error(self, client):
        response = client.post("/api-client/parse-curl", json={"command": "curl -X POST"})

        assert response.status_code == 422
        assert "no URL" in response.json()["detail"]

    def test_examples(self, client):
        examples = client.get("/api-client/examples").json()["examples"]

        assert len(examples) == 5
        assert all({"name", "curl"} <= set(example) for example in examples)
