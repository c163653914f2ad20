"""
Tests for API Client Tools and the Backend Client
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from api_client.backend_client import EXECUTE_PATH, BackendClient
from models.requests import BodyType, HttpMethod, RequestDescriptor
from server.tools.api_tools import ApiRequestTool, ParseCurlTool


class TestRequestDescriptor:
    """Tests for the descriptor model."""

    def test_payload_shape(self):
        descriptor = RequestDescriptor(
            method=HttpMethod.POST,
            url="https://api.example.com/users",
            headers={"Content-Type": "application/json"},
            body='{"a": 1}',
        )

        assert descriptor.to_payload() == {
            "method": "POST",
            "url": "https://api.example.com/users",
            "params": {},
            "headers": {"Content-Type": "application/json"},
            "body": '{"a": 1}',
            "bodyType": "json",
        }

    def test_accepts_camel_case(self):
        descriptor = RequestDescriptor.model_validate(
            {"url": "https://a.example.com", "bodyType": "x-www-form-urlencoded"}
        )
        assert descriptor.body_type == BodyType.URLENCODED

    def test_full_url(self):
        descriptor = RequestDescriptor(url="https://a.example.com/s", params={"q": "a b"})
        assert descriptor.full_url() == "https://a.example.com/s?q=a+b"

    def test_get_header_case_insensitive(self):
        descriptor = RequestDescriptor(url="u", headers={"X-Token": "t"})
        assert descriptor.get_header("x-token") == "t"
        assert descriptor.get_header("missing") is None

    def test_to_curl(self):
        descriptor = RequestDescriptor(
            method=HttpMethod.DELETE,
            url="https://a.example.com/users/1",
            headers={"Accept": "application/json"},
        )
        assert descriptor.to_curl() == (
            "curl -X DELETE https://a.example.com/users/1 -H 'Accept: application/json'"
        )


class TestParseCurlTool:
    """Tests for the parse_curl tool."""

    @pytest.mark.asyncio
    async def test_execute(self, sample_curl_commands):
        result = await ParseCurlTool().execute({"command": sample_curl_commands["post_json"]}, {})

        assert result["method"] == "POST"
        assert result["bodyType"] == "json"
        assert result["url"] == "https://api.example.com/users"

    @pytest.mark.asyncio
    async def test_bad_command_through_registry(self, registry):
        registry.register(ParseCurlTool())

        envelope = await registry.execute("parse_curl", {"command": "   "})

        assert envelope.success is False
        assert envelope.error_type == "CurlParseError"
        assert envelope.error == "Invalid curl command"


class TestApiRequestTool:
    """Tests for the api_request tool."""

    def test_build_descriptor_json_body(self):
        descriptor = ApiRequestTool().build_descriptor(
            {
                "url": "https://a.example.com/items",
                "method": "post",
                "headers": {"X-Id": 7},
                "params": {"page": 2},
                "body": {"name": "widget"},
            }
        )

        assert descriptor.method == HttpMethod.POST
        assert descriptor.headers == {"X-Id": "7"}
        assert descriptor.params == {"page": "2"}
        assert json.loads(descriptor.body) == {"name": "widget"}
        assert descriptor.body_type == BodyType.JSON

    def test_build_descriptor_text_body(self):
        descriptor = ApiRequestTool().build_descriptor({"url": "u", "body": "raw"})

        assert descriptor.method == HttpMethod.GET
        assert descriptor.body == "raw"
        assert descriptor.body_type == BodyType.TEXT

    def test_build_descriptor_moves_query_into_params(self):
        descriptor = ApiRequestTool().build_descriptor(
            {"url": "https://a.example.com/items?page=1&q=x", "params": {"page": 2}}
        )

        assert descriptor.url == "https://a.example.com/items"
        assert descriptor.params == {"page": "2", "q": "x"}
        assert descriptor.full_url() == "https://a.example.com/items?page=2&q=x"

    @pytest.mark.asyncio
    async def test_execute_uses_executor(self):
        executor = AsyncMock(return_value={"status": 200, "data": {"ok": True}})

        result = await ApiRequestTool(executor=executor).execute(
            {"url": "https://a.example.com/ping"}, {}
        )

        executor.assert_awaited_once()
        assert executor.await_args.args[0].url == "https://a.example.com/ping"
        assert result["response"] == {"status": 200, "data": {"ok": True}}
        assert result["request"]["method"] == "GET"
        assert result["summary"] == "GET request to https://a.example.com/ping completed"

    @pytest.mark.asyncio
    async def test_no_executor(self, registry):
        registry.register(ApiRequestTool())

        envelope = await registry.execute("api_request", {"url": "https://a.example.com"})

        assert envelope.success is False
        assert envelope.error == "No request executor configured"


class TestBackendClient:
    """Tests for the backend collaborator client."""

    @pytest.mark.asyncio
    async def test_execute_request_posts_descriptor(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"status": 201, "data": {"id": 1}, "time": 12})

        client = BackendClient(base_url="http://backend", transport=httpx.MockTransport(handler))
        descriptor = RequestDescriptor(method=HttpMethod.POST, url="https://a.example.com/users")

        response = await client.execute_request(descriptor)
        await client.close()

        assert response["status"] == 201
        assert captured[0].method == "POST"
        assert captured[0].url.path == EXECUTE_PATH
        assert json.loads(captured[0].content) == descriptor.to_payload()

    @pytest.mark.asyncio
    async def test_execute_request_error_status(self):
        client = BackendClient(
            base_url="http://backend",
            transport=httpx.MockTransport(lambda request: httpx.Response(502)),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await client.execute_request(RequestDescriptor(url="https://a.example.com"))

    @pytest.mark.asyncio
    async def test_health_check(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/health":
                return httpx.Response(200, json={"status": "ok"})
            return httpx.Response(404)

        client = BackendClient(base_url="http://backend", transport=httpx.MockTransport(handler))

        assert await client.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused")

        client = BackendClient(base_url="http://backend", transport=httpx.MockTransport(handler))

        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_api_request_tool_with_backend(self, registry):
        client = BackendClient(
            base_url="http://backend",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"status": 200, "data": "pong"})
            ),
        )
        registry.initialize_default_tools(executor=client.execute_request)

        envelope = await registry.execute(
            "api_request", {"url": "https://a.example.com/ping", "method": "GET"}
        )

        assert envelope.success is True
        assert envelope.data["response"]["data"] == "pong"
