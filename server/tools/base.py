"""
Base Tool Class

Capability interface for registrable tools, the BaseTool convenience
class, and the parameter-schema helpers shared with the registry.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from models.responses import ValidationResult


class ToolParameter(BaseModel):
    """Declared parameter of a tool."""

    model_config = ConfigDict(extra="allow")

    type: str = "string"  # "string", "number", "integer", "boolean", "object", ...
    description: str = ""
    required: bool = False
    default: Optional[Any] = None
    enum: Optional[List[Any]] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def to_schema(self) -> Dict[str, Any]:
        """JSON-schema property for this parameter."""
        return self.model_dump(exclude={"required"}, exclude_none=True)


@runtime_checkable
class Tool(Protocol):
    """What the registry needs from a capability object."""

    name: str
    description: str
    parameters: Mapping[str, Any]

    def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> Any:
        ...


def check_capability(tool: Any) -> None:
    """
    Structural conformance check performed once at registration.

    Raises:
        TypeError: if the object does not satisfy the Tool interface
    """
    name = getattr(tool, "name", None)
    if not isinstance(name, str) or not name:
        raise TypeError("Tool must have a non-empty string name")
    description = getattr(tool, "description", None)
    if not isinstance(description, str) or not description:
        raise TypeError(f"Tool {name} must have a description")
    if not isinstance(getattr(tool, "parameters", None), Mapping):
        raise TypeError(f"Tool {name} parameters must be a mapping")
    if not callable(getattr(tool, "execute", None)):
        raise TypeError(f"Tool {name} must implement execute")
    try:
        normalize_parameters(tool.parameters)
    except (TypeError, ValueError) as e:
        raise TypeError(f"Tool {name} has invalid parameters: {e}") from e


def normalize_parameters(parameters: Mapping[str, Any]) -> Dict[str, ToolParameter]:
    """Coerce plain dict parameter specs into ToolParameter models."""
    normalized = {}
    for name, spec in parameters.items():
        if isinstance(spec, ToolParameter):
            normalized[name] = spec
        elif isinstance(spec, Mapping):
            normalized[name] = ToolParameter.model_validate(dict(spec))
        else:
            raise TypeError(f"parameter {name} must be a mapping")
    return normalized


def validate_params(parameters: Mapping[str, Any], params: Mapping[str, Any]) -> ValidationResult:
    """Every required parameter must be present and not None."""
    errors = []
    for name, spec in normalize_parameters(parameters).items():
        if spec.required and params.get(name) is None:
            errors.append(f"Missing required parameter: {name}")
    return ValidationResult(valid=not errors, errors=errors)


def build_schema(tool: Tool) -> Dict[str, Any]:
    """Function-calling descriptor for a tool."""
    parameters = normalize_parameters(tool.parameters)
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": {
                "type": "object",
                "properties": {name: spec.to_schema() for name, spec in parameters.items()},
                "required": [name for name, spec in parameters.items() if spec.required],
            },
        },
    }


class BaseTool(ABC):
    """
    Abstract base class for tools.

    Subclasses set:
    - name: Tool name
    - description: Tool description
    - parameters: Mapping of parameter name to ToolParameter (or dict)
    - execute(): Main execution method
    """

    name: str
    description: str
    parameters: Dict[str, ToolParameter] = {}
    category: str = "general"
    enabled: bool = True
    version: str = "1.0.0"

    def __init__(self):
        self._validate_definition()
        self.parameters = normalize_parameters(self.parameters)

    def _validate_definition(self):
        """Validate tool definition."""
        if not getattr(self, "name", None):
            raise ValueError("Tool must have a name")
        if not getattr(self, "description", None):
            raise ValueError("Tool must have a description")

    @abstractmethod
    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> Any:
        """
        Execute the tool with given parameters.

        Args:
            params: Validated tool parameters
            context: Execution context (user, session, ...)

        Returns:
            Tool result; failures are raised
        """

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return validate_params(self.parameters, params)

    def get_schema(self) -> Dict[str, Any]:
        return build_schema(self)
