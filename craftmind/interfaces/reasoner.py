"""Reasoner interface: the remote planning and tool-selection service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from craftmind.interfaces.errors import CraftmindError
from craftmind.models.messages import ReasonerReply, TranscriptMessage


class ReasonerError(CraftmindError):
    """Reasoner service or network failure.

    Aborts the current dispatch call entirely.
    """

    pass


class Reasoner(ABC):
    """Abstract interface for the reasoning service."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send a single prompt and return the reply text.

        Raises:
            ReasonerError: If the service call fails.
        """
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[TranscriptMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ReasonerReply:
        """Continue a transcript, optionally offering a tool menu.

        Requests use tool_choice=auto and at most one simultaneous
        invocation. A reply may still carry several invocations; callers
        process them in order.

        Raises:
            ReasonerError: If the service call fails.
        """
        ...
