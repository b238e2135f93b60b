"""Diagnostic log entry models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(str, Enum):
    """Severity of a diagnostic log entry."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogEntry(BaseModel):
    """A single buffered diagnostic entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel
    timestamp: datetime
    message: str
    context: str | None = None
    data: Any = None


class LogEntryCreate(BaseModel):
    """Request model for a client-reported log entry."""

    level: LogLevel = LogLevel.INFO
    message: str = Field(..., min_length=1, max_length=2000)
    context: str | None = Field(default=None, max_length=100)
    data: Any = None
