"""
API Server - Main Application

Thin HTTP surface over the tool registry and the curl parser.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from api_client.backend_client import BackendClient
from api_client.curl_parser import CurlParseError, CurlParser, parse_curl
from models.requests import CurlParseRequest, ToolCallsRequest, ToolRequest
from models.responses import ExecutionEnvelope, HealthResponse
from observability.logging_config import configure_logging, get_logger
from observability.metrics import metrics
from server.config import ServerConfig, get_server_config
from server.tools.registry import CapabilityRegistry, ToolNotFoundError

logger = get_logger(__name__)

VERSION = "0.1.0"


def get_registry(request: Request) -> CapabilityRegistry:
    """Registry instance owned by the application."""
    return request.app.state.registry


def _envelope_payload(envelope: ExecutionEnvelope) -> Dict[str, Any]:
    return envelope.model_dump(mode="json", by_alias=True)


def create_app(
    registry: Optional[CapabilityRegistry] = None,
    config: Optional[ServerConfig] = None,
    backend: Optional[BackendClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        registry: Registry to serve; a registry with the built-in tools is created if omitted
        config: Server configuration; read from the environment if omitted
        backend: Backend client used by the api_request tool
    """
    config = config or get_server_config()
    backend = backend or BackendClient(
        base_url=config.backend_base_url,
        timeout=config.backend_timeout_seconds,
    )

    if registry is None:
        registry = CapabilityRegistry(max_history=config.tool_history_limit)
        registry.initialize_default_tools(executor=backend.execute_request)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        configure_logging(level=config.log_level, format_json=config.log_json)
        metrics.set_app_info(VERSION, len(registry.get_names()))
        logger.info("server_starting", tools=registry.get_names())
        yield
        await backend.close()
        logger.info("server_stopped")

    app = FastAPI(
        title="Automation Panel Core",
        description="Curl parsing and tool execution for the automation control panel",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.backend = backend

    @app.get("/health", response_model=HealthResponse)
    async def health_check(registry: CapabilityRegistry = Depends(get_registry)):
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=VERSION,
            tools_loaded=len(registry.get_names()),
        )

    @app.get("/metrics")
    async def prometheus_metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/tools")
    async def list_tools(registry: CapabilityRegistry = Depends(get_registry)):
        """Function-calling schemas of enabled tools."""
        return {"tools": registry.get_schemas()}

    @app.get("/tools/stats")
    async def tool_stats(registry: CapabilityRegistry = Depends(get_registry)):
        return registry.get_stats()

    @app.get("/tools/history")
    async def tool_history(
        tool_name: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        registry: CapabilityRegistry = Depends(get_registry),
    ):
        history = registry.get_execution_history(tool_name=tool_name, status=status, limit=limit)
        return {"history": [record.model_dump(mode="json", by_alias=True) for record in history]}

    @app.delete("/tools/history")
    async def clear_tool_history(registry: CapabilityRegistry = Depends(get_registry)):
        registry.clear_history()
        return {"cleared": True}

    @app.post("/tool/{tool_name}")
    async def execute_tool(
        tool_name: str,
        request: ToolRequest,
        registry: CapabilityRegistry = Depends(get_registry),
    ):
        """
        Execute a specific tool.

        Failures are returned as envelopes with ``success: false``; an unknown
        tool additionally answers 404.
        """
        envelope = await registry.execute(tool_name, request.params, request.context)

        if envelope.error_type == ToolNotFoundError.__name__:
            raise HTTPException(status_code=404, detail=envelope.error)

        return _envelope_payload(envelope)

    @app.post("/execute")
    async def execute_tool_generic(
        request: ToolRequest,
        registry: CapabilityRegistry = Depends(get_registry),
    ):
        """Generic tool execution endpoint (alternative to /tool/{name})."""
        if not request.tool_name:
            raise HTTPException(status_code=422, detail="tool_name is required")
        return await execute_tool(request.tool_name, request, registry)

    @app.post("/tool-calls")
    async def execute_tool_calls(
        request: ToolCallsRequest,
        registry: CapabilityRegistry = Depends(get_registry),
    ):
        """Run a batch of AI tool calls; one failing call never aborts the others."""
        results = await registry.execute_tool_calls(request.tool_calls, request.context)
        return {
            "results": [
                {"id": call_id, **_envelope_payload(envelope)} for call_id, envelope in results
            ]
        }

    @app.post("/api-client/parse-curl")
    async def parse_curl_command(request: CurlParseRequest):
        try:
            descriptor = parse_curl(request.command)
        except CurlParseError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return descriptor.to_payload()

    @app.get("/api-client/examples")
    async def curl_examples():
        return {"examples": CurlParser.get_examples()}

    return app


app = create_app()


def main():
    """Main entry point."""
    import uvicorn

    config = get_server_config()
    uvicorn.run(
        "server.api_server:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    main()
