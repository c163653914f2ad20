"""
Response Models

Pydantic models for tool execution results and the audit trail.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExecutionStatus(str, Enum):
    """Outcome of a tool invocation."""

    SUCCESS = "success"
    ERROR = "error"


class ValidationResult(BaseModel):
    """Result of checking params against a tool's declared parameters."""

    valid: bool
    errors: List[str] = Field(default_factory=list)


class ToolExecutionRecord(BaseModel):
    """Append-only audit entry, one per invocation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    tool_name: str = Field(..., alias="toolName")
    params: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Any] = None
    error: Optional[str] = None
    duration: float = Field(..., ge=0, description="Wall-clock duration in ms")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ExecutionStatus

    @model_validator(mode="after")
    def validate_outcome(self) -> "ToolExecutionRecord":
        if self.status == ExecutionStatus.ERROR:
            if not self.error or self.result is not None:
                raise ValueError("error records carry an error and no result")
        elif self.error is not None:
            raise ValueError("success records carry no error")
        return self


class ExecutionEnvelope(BaseModel):
    """Uniform result returned by every tool invocation."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "data": {"result": 14},
                "executionId": "exec_1718000000000_a1b2c3d4e",
                "duration": 1.7,
                "toolName": "calculate",
            }
        },
    )

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_type: Optional[str] = Field(None, alias="errorType")
    execution_id: str = Field(..., alias="executionId")
    duration: float = Field(..., ge=0, description="Wall-clock duration in ms")
    tool_name: str = Field(..., alias="toolName")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    tools_loaded: int = 0
