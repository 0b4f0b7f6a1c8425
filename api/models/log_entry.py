"""
Log entry model handed to logging backends.
"""

from typing import Any

from pydantic import BaseModel, Field


class LogEntry(BaseModel):
    """A finished log entry: level, human-readable message and structured metadata."""

    level: str = Field(..., description="Level name, e.g. info, warn, error")
    message: str = Field(..., description="Rendered log message")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Structured metadata, shaped by the meta_field option"
    )
