"""Reasoner transcript models."""

from __future__ import annotations

import uuid
from enum import StrEnum

from pydantic import BaseModel, Field


class MessageRole(StrEnum):
    """Role tag of a transcript message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolInvocation(BaseModel):
    """A primitive invocation requested by the reasoner.

    ``arguments`` is kept as the raw JSON text returned by the service so
    that parsing failures can be reported back verbatim.
    """

    id: str = Field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}")
    name: str
    arguments: str = "{}"

    model_config = {"frozen": True}


class TranscriptMessage(BaseModel):
    """One entry of a dispatch transcript."""

    role: MessageRole
    content: str = ""
    name: str | None = Field(default=None, description="Tool name for tool results")
    tool_call_id: str | None = None
    tool_calls: list[ToolInvocation] = Field(default_factory=list)

    model_config = {"frozen": True}

    @classmethod
    def user(cls, content: str) -> TranscriptMessage:
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def system(cls, content: str) -> TranscriptMessage:
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def tool_result(cls, invocation: ToolInvocation, content: str) -> TranscriptMessage:
        """Create a tool-result message answering ``invocation``."""
        return cls(
            role=MessageRole.TOOL,
            content=content,
            name=invocation.name,
            tool_call_id=invocation.id,
        )


class ReasonerReply(BaseModel):
    """Assistant text and zero or more requested invocations, in order."""

    text: str | None = None
    invocations: list[ToolInvocation] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def wants_tools(self) -> bool:
        """Whether the reasoner asked for at least one invocation."""
        return bool(self.invocations)
