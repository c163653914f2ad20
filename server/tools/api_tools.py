"""
API Client Tools

Tools over the request descriptor model: parse a curl command, and hand a
request to the backend for execution.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional

from api_client.curl_parser import parse_curl, split_url_params
from models.requests import BodyType, HttpMethod, RequestDescriptor
from observability.logging_config import get_logger
from server.tools.base import BaseTool, ToolParameter

logger = get_logger(__name__)

RequestExecutor = Callable[[RequestDescriptor], Awaitable[Dict[str, Any]]]


class ParseCurlTool(BaseTool):
    """Turn a curl command into a structured request."""

    name = "parse_curl"
    description = "Parse a curl command into method, url, query params, headers and body"
    category = "network"
    parameters = {
        "command": ToolParameter(
            type="string",
            description="The curl command to parse",
            required=True,
        ),
    }

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        descriptor = parse_curl(params["command"])
        return descriptor.to_payload()


class ApiRequestTool(BaseTool):
    """
    Make an HTTP request through the backend.

    The tool only builds the RequestDescriptor; the injected executor
    (normally BackendClient.execute_request) performs the call.
    """

    name = "api_request"
    description = "Makes HTTP requests to external APIs and returns responses"
    category = "network"
    parameters = {
        "url": ToolParameter(type="string", description="The API endpoint URL", required=True),
        "method": ToolParameter(
            type="string",
            description="HTTP method",
            default="GET",
            enum=[method.value for method in HttpMethod],
        ),
        "headers": ToolParameter(type="object", description="HTTP headers as key-value pairs"),
        "params": ToolParameter(type="object", description="Query parameters as key-value pairs"),
        "body": ToolParameter(
            type="object",
            description="Request body (for POST, PUT, PATCH methods)",
        ),
    }

    def __init__(self, executor: Optional[RequestExecutor] = None):
        super().__init__()
        self.executor = executor

    def build_descriptor(self, params: Dict[str, Any]) -> RequestDescriptor:
        body = params.get("body")
        if body is None:
            body_text, body_type = "", BodyType.JSON
        elif isinstance(body, (dict, list)):
            body_text, body_type = json.dumps(body, indent=2), BodyType.JSON
        else:
            body_text, body_type = str(body), BodyType.TEXT

        # Explicit params override those already in the url
        url, query = split_url_params(str(params["url"]))
        query.update({str(k): str(v) for k, v in (params.get("params") or {}).items()})

        return RequestDescriptor(
            method=HttpMethod(str(params.get("method") or "GET").upper()),
            url=url,
            params=query,
            headers={str(k): str(v) for k, v in (params.get("headers") or {}).items()},
            body=body_text,
            body_type=body_type,
        )

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        if self.executor is None:
            raise RuntimeError("No request executor configured")

        descriptor = self.build_descriptor(params)
        logger.info("api_request", method=descriptor.method.value, url=descriptor.url)
        response = await self.executor(descriptor)

        return {
            "request": descriptor.to_payload(),
            "response": response,
            "summary": f"{descriptor.method.value} request to {descriptor.url} completed",
        }
