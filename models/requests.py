"""
Request Models

Pydantic models for HTTP request descriptors and preview requests.
"""

import shlex
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field


class HttpMethod(str, Enum):
    """Supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class BodyType(str, Enum):
    """How a request body is encoded."""

    JSON = "json"
    TEXT = "text"
    FORM_DATA = "form-data"
    URLENCODED = "x-www-form-urlencoded"


class RequestDescriptor(BaseModel):
    """
    Canonical structured form of an HTTP request.

    Produced by the curl parser or built directly by a request builder and
    handed unmodified to the backend "execute request" call. The url never
    carries a query string; query parameters live in ``params``.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    method: HttpMethod = HttpMethod.GET
    url: str = ""
    params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""
    body_type: BodyType = Field(default=BodyType.JSON, alias="bodyType")

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def full_url(self) -> str:
        """Url with the query string re-attached."""
        if not self.params:
            return self.url
        return f"{self.url}?{urlencode(self.params)}"

    def to_curl(self) -> str:
        """Render the descriptor as a curl command."""
        parts: List[str] = ["curl"]
        if self.method != HttpMethod.GET:
            parts += ["-X", self.method.value]
        parts.append(shlex.quote(self.full_url()))

        for key, value in self.headers.items():
            parts += ["-H", shlex.quote(f"{key}: {value}")]

        if self.body:
            if self.body_type == BodyType.FORM_DATA:
                for field in self.body.splitlines():
                    if field:
                        parts += ["-F", shlex.quote(field)]
            else:
                parts += ["--data-raw", shlex.quote(self.body)]

        return " ".join(parts)

    def to_payload(self) -> Dict[str, object]:
        """Wire shape expected by the backend execute endpoint."""
        return self.model_dump(mode="json", by_alias=True)


class PRPreviewRequest(BaseModel):
    """Request that initiates a pull request preview."""

    model_config = ConfigDict(populate_by_name=True)

    project_key: str = Field(..., alias="projectKey", min_length=1)
    repo_slug: str = Field(..., alias="repoSlug", min_length=1)
    branch_name: str = Field(..., alias="branchName", min_length=1)

    def to_payload(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class ToolRequest(BaseModel):
    """Tool execution request."""

    tool_name: Optional[str] = Field(None, description="Name of the tool to call")
    params: Dict[str, Any] = Field(default_factory=dict, description="Tool parameters")
    context: Dict[str, Any] = Field(default_factory=dict, description="Execution context")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tool_name": "calculate",
                "params": {"expression": "2 + 3 * 4"},
                "context": {"session_id": "abc123"},
            }
        }
    )


class ToolCallsRequest(BaseModel):
    """Batch of function-calling style tool calls."""

    tool_calls: List[Any] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)


class CurlParseRequest(BaseModel):
    """Curl command to parse."""

    command: str
