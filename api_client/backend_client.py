"""
Backend Client - HTTP Client for the Request Execution Backend

Hands RequestDescriptors to the backend's "execute request" endpoint.
This core never performs the described request itself.
"""

import time
from typing import Any, Dict, Optional

import httpx

from models.requests import RequestDescriptor
from observability.logging_config import get_logger
from observability.metrics import metrics

logger = get_logger(__name__)

EXECUTE_PATH = "/api/api-client/execute"


class BackendClient:
    """
    Async HTTP client for the backend collaborator.

    Features:
    - Lazily created, pooled httpx client
    - Request timeout handling
    - Structured logging and metrics
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize backend client.

        Args:
            base_url: Backend URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def execute_request(self, descriptor: RequestDescriptor) -> Dict[str, Any]:
        """
        Ask the backend to execute a request.

        Args:
            descriptor: Request to execute, sent unmodified

        Returns:
            Backend JSON response (status, headers, data, timing)

        Raises:
            httpx.HTTPStatusError: backend answered with a non-2xx status
            httpx.RequestError: backend unreachable
        """
        start_time = time.perf_counter()
        client = await self._get_client()

        logger.info(
            "backend_execute_start",
            method=descriptor.method.value,
            url=descriptor.url,
        )

        try:
            response = await client.post(EXECUTE_PATH, json=descriptor.to_payload())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            metrics.record_backend_call(
                "execute", time.perf_counter() - start_time, str(e.response.status_code)
            )
            logger.error(
                "backend_execute_failed",
                status_code=e.response.status_code,
                error=str(e),
            )
            raise
        except httpx.RequestError as e:
            metrics.record_backend_call("execute", time.perf_counter() - start_time, "error")
            logger.error("backend_execute_error", error=str(e))
            raise

        latency = time.perf_counter() - start_time
        metrics.record_backend_call("execute", latency, str(response.status_code))
        logger.info(
            "backend_execute_complete",
            url=descriptor.url,
            duration_ms=int(latency * 1000),
        )
        return response.json()

    async def health_check(self) -> bool:
        """
        Check backend health.

        Returns:
            True if the backend answers its health endpoint
        """
        client = await self._get_client()

        try:
            response = await client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False
