"""
Automation Panel Core - Tools Package

- Capability interface and base tool class
- Capability registry
- Utility tools (calculator)
- API client tools (curl parsing, backend request execution)
"""

from server.tools.api_tools import ApiRequestTool, ParseCurlTool
from server.tools.base import BaseTool, Tool, ToolParameter
from server.tools.registry import (
    CapabilityRegistry,
    ToolDisabledError,
    ToolNotFoundError,
    ToolValidationError,
)
from server.tools.utility_tools import CalculatorTool

__all__ = [
    # Base
    "BaseTool",
    "Tool",
    "ToolParameter",

    # Registry
    "CapabilityRegistry",
    "ToolDisabledError",
    "ToolNotFoundError",
    "ToolValidationError",

    # Tools
    "ApiRequestTool",
    "CalculatorTool",
    "ParseCurlTool",
]
