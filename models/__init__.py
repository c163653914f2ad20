"""
Automation Panel Core - Models Package

Pydantic data models:
- Requests (HTTP request descriptors, preview requests)
- Events (stream events, preview artifact)
- Responses (execution envelopes, audit records)
"""

from models.events import PreviewArtifact, StreamEvent, StreamEventType
from models.requests import BodyType, HttpMethod, PRPreviewRequest, RequestDescriptor
from models.responses import (
    ExecutionEnvelope,
    ExecutionStatus,
    ToolExecutionRecord,
    ValidationResult,
)

__all__ = [
    "BodyType",
    "HttpMethod",
    "PRPreviewRequest",
    "RequestDescriptor",
    "PreviewArtifact",
    "StreamEvent",
    "StreamEventType",
    "ExecutionEnvelope",
    "ExecutionStatus",
    "ToolExecutionRecord",
    "ValidationResult",
]
