"""
PR Preview Client

Opens the pull request preview stream on the backend and feeds it to a
StreamEventProcessor. When the stream cannot be opened, a single
non-streaming request is made instead and its result is treated as the
final preview.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from models.events import PreviewArtifact
from models.requests import PRPreviewRequest
from observability.logging_config import get_logger
from observability.metrics import metrics
from preview.stream_processor import (
    DEFAULT_EVENT_PREFIX,
    StreamCallbacks,
    StreamEventProcessor,
    StreamOutcome,
    TransportOpenError,
    invoke_callback,
)
from server.config import ServerConfig

logger = get_logger(__name__)


class PRPreviewClient:
    """
    Client for the backend's PR preview endpoints.

    Features:
    - Streaming preview over a long-lived POST response
    - One non-streaming fallback when the stream cannot be opened
    - Cancellation of the in-flight stream
    """

    STREAM_PATH = "/api/pr/stream-preview"
    FALLBACK_PATH = "/api/pr/create"

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        timeout: float = 30.0,
        event_prefix: str = DEFAULT_EVENT_PREFIX,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize PR preview client.

        Args:
            base_url: Backend URL
            timeout: Connect/request timeout in seconds; stream reads never time out
            event_prefix: Line prefix marking event lines
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.event_prefix = event_prefix
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._active: Optional[StreamEventProcessor] = None

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PRPreviewClient":
        return cls(
            base_url=config.backend_base_url,
            timeout=config.backend_timeout_seconds,
            event_prefix=config.stream_event_prefix,
            transport=transport,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def open_stream(self, request: PRPreviewRequest) -> AsyncIterator[httpx.Response]:
        """
        Open the preview stream.

        Raises:
            TransportOpenError: network failure or non-success status
        """
        client = await self._get_client()
        http_request = client.build_request(
            "POST",
            self.STREAM_PATH,
            json=request.to_payload(),
            timeout=httpx.Timeout(self.timeout, read=None),
        )

        try:
            response = await client.send(http_request, stream=True)
        except httpx.HTTPError as e:
            raise TransportOpenError(f"Failed to start streaming preview: {e}") from e

        try:
            if not response.is_success:
                raise TransportOpenError(f"HTTP error! status: {response.status_code}")
            yield response
        finally:
            await response.aclose()

    async def stream_preview(
        self,
        request: PRPreviewRequest,
        callbacks: StreamCallbacks,
    ) -> StreamOutcome:
        """
        Stream a preview, driving the callbacks.

        Raises:
            TransportOpenError: the stream could not be opened
        """
        logger.info(
            "pr_stream_start",
            project=request.project_key,
            repo=request.repo_slug,
            branch=request.branch_name,
        )
        processor = StreamEventProcessor(
            PreviewArtifact(branch_name=request.branch_name),
            callbacks,
            prefix=self.event_prefix,
        )

        async with self.open_stream(request) as response:
            self._active = processor
            try:
                return await processor.process(response.aiter_bytes())
            finally:
                self._active = None

    async def fetch_preview(self, request: PRPreviewRequest) -> PreviewArtifact:
        """Non-streaming preview round trip."""
        client = await self._get_client()
        response = await client.post(self.FALLBACK_PATH, json=request.to_payload())
        response.raise_for_status()
        return PreviewArtifact.model_validate(
            {"branchName": request.branch_name, **response.json()}
        )

    async def generate_preview(
        self,
        request: PRPreviewRequest,
        callbacks: StreamCallbacks,
    ) -> StreamOutcome:
        """
        Stream a preview, falling back once to the non-streaming endpoint.

        The fallback runs only when the stream cannot be opened. Its result
        goes to ``on_complete``; its failure goes to ``on_error``.
        """
        try:
            return await self.stream_preview(request, callbacks)
        except TransportOpenError as e:
            logger.warning("pr_stream_open_failed", error=str(e))

        logger.info("pr_preview_fallback", branch=request.branch_name)
        metrics.record_stream_outcome("fallback")

        try:
            artifact = await self.fetch_preview(request)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.error("pr_preview_fallback_failed", error=str(e))
            await invoke_callback(callbacks.on_error, e)
            return StreamOutcome.FAILED

        logger.info("pr_preview_generated", branch=artifact.branch_name)
        await invoke_callback(callbacks.on_complete, artifact)
        return StreamOutcome.COMPLETED

    def cancel(self) -> bool:
        """
        Cancel the in-flight stream, if any.

        The pending read is abandoned and ``open_stream`` closes the
        response, so the connection is released even if the server has
        stopped sending.
        """
        if self._active is None:
            return False
        logger.info("pr_stream_cancel_requested")
        self._active.cancel()
        return True


def is_preview_ready(artifact: Optional[PreviewArtifact]) -> bool:
    """True once the preview has both a title and a description."""
    return bool(artifact and artifact.pr_title and artifact.pr_description)
