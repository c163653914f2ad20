"""
Stream Event Models

Models for the typed event stream that builds a pull request preview.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StreamEventType(str, Enum):
    """Event types carried by the preview stream."""

    STATUS = "status"
    CHUNK = "chunk"
    TITLE_CHUNK = "title_chunk"
    TITLE_COMPLETE = "title_complete"
    DESCRIPTION_CHUNK = "description_chunk"
    DESCRIPTION_COMPLETE = "description_complete"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamEventType.COMPLETE, StreamEventType.ERROR)


class StreamEvent(BaseModel):
    """One decoded unit from the transport."""

    model_config = ConfigDict(extra="allow")

    type: StreamEventType
    data: Any = None
    message: Optional[str] = None


class PreviewArtifact(BaseModel):
    """
    Pull request preview under construction.

    Frozen: every stream event that changes the preview produces a new
    instance, so callers may keep references to earlier values.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    pr_title: str = Field(default="", alias="prTitle")
    pr_description: str = Field(default="", alias="prDescription")
    ai_generated: bool = Field(default=False, alias="aiGenerated")
    branch_name: str = Field(default="", alias="branchName")

    def append_title(self, fragment: str) -> "PreviewArtifact":
        return self.model_copy(update={"pr_title": self.pr_title + fragment})

    def with_title(self, title: str) -> "PreviewArtifact":
        return self.model_copy(update={"pr_title": title})

    def append_description(self, fragment: str) -> "PreviewArtifact":
        return self.model_copy(update={"pr_description": self.pr_description + fragment})

    def with_description(self, description: str) -> "PreviewArtifact":
        return self.model_copy(update={"pr_description": description})

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
