"""
Capability Registry

Holds pluggable tools keyed by name, validates their inputs, executes them
and keeps an audit trail. Failures never escape ``execute``: they come back
as failure envelopes so one bad tool call cannot break a multi-tool session.
"""

import asyncio
import inspect
import json
import time
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from models.responses import ExecutionEnvelope, ExecutionStatus, ToolExecutionRecord
from observability.logging_config import get_logger
from observability.metrics import metrics
from server.tools.base import Tool, build_schema, check_capability, validate_params

logger = get_logger(__name__)

UNKNOWN_TOOL_LABEL = "unknown"


class ToolNotFoundError(LookupError):
    """No tool registered under the requested name."""


class ToolDisabledError(RuntimeError):
    """The tool exists but is disabled."""


class ToolValidationError(ValueError):
    """Params do not satisfy the tool's declared parameters."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Tool validation failed: {', '.join(errors)}")


class CapabilityRegistry:
    """
    Registry for tools.

    Created once per process and passed to whatever needs to register or
    execute tools. Execution places no concurrency limit; each public
    operation mutates state without suspending in between.
    """

    def __init__(self, max_history: int = 1000):
        self._tools: Dict[str, Tool] = {}
        self._history: List[ToolExecutionRecord] = []
        self.max_history = max_history

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: Tool) -> None:
        """
        Register a tool instance. Re-registering a name overwrites it.

        Raises:
            TypeError: if the object does not satisfy the Tool interface
        """
        check_capability(tool)

        overwrite = tool.name in self._tools
        if overwrite:
            logger.warning("tool_overwritten", name=tool.name)

        self._tools[tool.name] = tool
        metrics.record_registration(overwrite)
        logger.info("tool_registered", name=tool.name, category=_category(tool))

    def unregister(self, name: str) -> bool:
        """Remove a tool; returns whether one was removed."""
        removed = self._tools.pop(name, None) is not None
        if removed:
            logger.info("tool_unregistered", name=name)
        return removed

    def initialize_default_tools(
        self,
        executor: Optional[Callable[..., Any]] = None,
    ) -> None:
        """Register the built-in tools."""
        from server.tools.api_tools import ApiRequestTool, ParseCurlTool
        from server.tools.utility_tools import CalculatorTool

        self.register(CalculatorTool())
        self.register(ParseCurlTool())
        self.register(ApiRequestTool(executor=executor))

        logger.info("tools_initialized", count=len(self._tools), tools=self.get_names())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_tools(
        self,
        category: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> List[Tool]:
        """Registered tools, optionally filtered by exact category and enabled flag."""
        tools = list(self._tools.values())
        if category is not None:
            tools = [tool for tool in tools if _category(tool) == category]
        if enabled is not None:
            tools = [tool for tool in tools if _enabled(tool) == enabled]
        return tools

    def get_names(self) -> List[str]:
        return list(self._tools.keys())

    def get_schemas(self) -> List[Dict[str, Any]]:
        """Function-calling descriptors for every enabled tool."""
        return [build_schema(tool) for tool in self.get_tools(enabled=True)]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        name: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ExecutionEnvelope:
        """
        Execute a tool by name.

        Args:
            name: Tool name
            params: Tool parameters
            context: Execution context passed through to the tool

        Returns:
            ExecutionEnvelope; never raises for tool or lookup failures
        """
        params = dict(params or {})
        context = context or {}
        execution_id = _new_execution_id()
        start_time = time.perf_counter()

        try:
            tool = self._resolve(name)
            validation = validate_params(tool.parameters, params)
            if not validation.valid:
                raise ToolValidationError(validation.errors)

            logger.info("tool_execution_start", tool=name, execution_id=execution_id)
            result = tool.execute(params, context)
            if inspect.isawaitable(result):
                result = await result

        except asyncio.CancelledError:
            cancelled = asyncio.CancelledError("Tool execution cancelled")
            self._finish(name, params, execution_id, start_time, error=cancelled)
            raise
        except (ToolNotFoundError, ToolDisabledError, ToolValidationError) as e:
            logger.warning("tool_execution_rejected", tool=name, error=str(e))
            return self._finish(name, params, execution_id, start_time, error=e)
        except Exception as e:
            logger.error("tool_execution_error", tool=name, execution_id=execution_id, error=str(e))
            return self._finish(name, params, execution_id, start_time, error=e)

        return self._finish(name, params, execution_id, start_time, result=result)

    async def execute_tool_calls(
        self,
        tool_calls: Iterable[Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[str, ExecutionEnvelope]]:
        """
        Execute function-calling style tool calls concurrently.

        Accepts ``{"id", "function": {"name", "arguments"}}`` (arguments as a
        JSON string or object) or the flat ``{"id", "name", "parameters"}``
        form. Returns ``(call_id, envelope)`` pairs in input order.
        """

        async def run(index: int, call: Any) -> Tuple[str, ExecutionEnvelope]:
            call_id, name, params, error = _unpack_tool_call(call, index)
            if error is not None:
                execution_id = _new_execution_id()
                logger.warning("tool_call_malformed", call_id=call_id, error=error)
                return call_id, self._finish(
                    name, {}, execution_id, time.perf_counter(), error=ToolValidationError([error])
                )
            return call_id, await self.execute(name, params, context)

        return list(await asyncio.gather(*(run(i, call) for i, call in enumerate(tool_calls))))

    def _resolve(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool {name} not found")
        if not _enabled(tool):
            raise ToolDisabledError(f"Tool {name} is disabled")
        return tool

    def _finish(
        self,
        name: str,
        params: Dict[str, Any],
        execution_id: str,
        start_time: float,
        result: Any = None,
        error: Optional[BaseException] = None,
    ) -> ExecutionEnvelope:
        """Record exactly one history entry and build the envelope."""
        elapsed = time.perf_counter() - start_time
        duration = round(elapsed * 1000, 3)
        success = error is None
        message = None if success else (str(error) or error.__class__.__name__)

        self._append(
            ToolExecutionRecord(
                id=execution_id,
                tool_name=name,
                params=params,
                result=result if success else None,
                error=message,
                duration=duration,
                status=ExecutionStatus.SUCCESS if success else ExecutionStatus.ERROR,
            )
        )
        # Unregistered names stay out of the metric labels
        label = name if name in self._tools else UNKNOWN_TOOL_LABEL
        metrics.record_tool_execution(label, elapsed, success)

        if success:
            logger.info("tool_execution_complete", tool=name, duration_ms=duration)

        return ExecutionEnvelope(
            success=success,
            data=result if success else None,
            error=message,
            error_type=None if success else error.__class__.__name__,
            execution_id=execution_id,
            duration=duration,
            tool_name=name,
        )

    def _append(self, record: ToolExecutionRecord) -> None:
        self._history.append(record)
        overflow = len(self._history) - self.max_history
        if overflow > 0:
            del self._history[:overflow]

    # ------------------------------------------------------------------
    # History and stats
    # ------------------------------------------------------------------

    def get_execution_history(
        self,
        tool_name: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ToolExecutionRecord]:
        """History filtered by tool and status; ``limit`` keeps the most recent."""
        history = list(self._history)
        if tool_name:
            history = [record for record in history if record.tool_name == tool_name]
        if status:
            history = [record for record in history if record.status == status]
        if limit:
            history = history[-limit:]
        return history

    def clear_history(self) -> None:
        self._history = []
        logger.info("execution_history_cleared")

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate counts derived from current tools and history."""
        tools = self.get_tools()
        categories = sorted({_category(tool) for tool in tools})
        history = self._history

        return {
            "total_tools": len(tools),
            "enabled_tools": sum(1 for tool in tools if _enabled(tool)),
            "categories": len(categories),
            "total_executions": len(history),
            "successful_executions": sum(
                1 for record in history if record.status == ExecutionStatus.SUCCESS
            ),
            "failed_executions": sum(
                1 for record in history if record.status == ExecutionStatus.ERROR
            ),
            "categories_breakdown": [
                {
                    "category": category,
                    "count": sum(1 for tool in tools if _category(tool) == category),
                }
                for category in categories
            ],
        }


def _category(tool: Tool) -> str:
    return getattr(tool, "category", "general")


def _enabled(tool: Tool) -> bool:
    return bool(getattr(tool, "enabled", True))


def _new_execution_id() -> str:
    return f"exec_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _unpack_tool_call(call: Any, index: int) -> Tuple[str, str, Dict[str, Any], Optional[str]]:
    """Returns (call_id, name, params, error)."""
    if not isinstance(call, dict):
        return f"call_{index}", "", {}, "Tool call must be an object"

    call_id = str(call.get("id") or f"call_{index}")
    function = call.get("function") if isinstance(call.get("function"), dict) else call
    name = function.get("name") or ""

    arguments = function.get("arguments", function.get("parameters"))
    if arguments is None or arguments == "":
        arguments = {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except ValueError:
            return call_id, name, {}, "Invalid tool call arguments: not valid JSON"
    if not isinstance(arguments, dict):
        return call_id, name, {}, "Invalid tool call arguments: expected an object"

    return call_id, name, arguments, None
