"""
Automation Panel Core - Preview Package

Pull request preview streaming:
- Stream event processor
- Backend preview client with non-streaming fallback
"""

from preview.pr_client import PRPreviewClient, is_preview_ready
from preview.stream_processor import (
    StreamCallbacks,
    StreamDecodeError,
    StreamEventError,
    StreamEventProcessor,
    StreamIncompleteError,
    StreamOutcome,
    TransportOpenError,
)

__all__ = [
    "PRPreviewClient",
    "is_preview_ready",
    "StreamCallbacks",
    "StreamDecodeError",
    "StreamEventError",
    "StreamEventProcessor",
    "StreamIncompleteError",
    "StreamOutcome",
    "TransportOpenError",
]
