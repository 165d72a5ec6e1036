"""Event log entry model.

The event log is the only durable artifact the agent produces. Entries are
frozen once created and the log itself is append-only.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class LogRole(StrEnum):
    """Who produced a log entry."""

    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"
    SYSTEM = "system"
    API_REQUEST = "api_request"
    API_RESPONSE = "api_response"
    API_ERROR = "api_error"
    MEMORY = "memory"


class LogEntry(BaseModel):
    """A single record in the agent's event log."""

    timestamp: datetime = Field(default_factory=datetime.now)
    role: LogRole
    content: str
    metadata: dict[str, Any] | None = None

    model_config = {"frozen": True}
