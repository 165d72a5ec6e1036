"""Reasoner adapter backed by a hosted LLM.

This module provides the LLMReasoner class that:
- Implements the Reasoner interface for the Anthropic and OpenAI APIs
- Retries transient failures with exponential backoff
- Spaces requests by a minimum interval
- Rejects prompts and responses longer than a fixed cap
- Can be switched off globally at runtime
- Tracks request and character usage

Example:
    >>> from craftmind.llm import LLMReasoner, ReasonerConfig
    >>>
    >>> reasoner = LLMReasoner(ReasonerConfig(provider="openai"))
    >>> text = await reasoner.complete("Say hello")
    >>> reasoner.toggle_enabled()
    False
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

from craftmind.interfaces.reasoner import Reasoner, ReasonerError
from craftmind.models.messages import (
    MessageRole,
    ReasonerReply,
    ToolInvocation,
    TranscriptMessage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Valid LLM providers
VALID_PROVIDERS = {"anthropic", "openai"}

DEFAULT_MODELS = {
    "anthropic": "claude-3-5-haiku-latest",
    "openai": "gpt-4o-mini",
}

API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

MAX_LENGTH = 100_000
USAGE_WINDOW_SECONDS = 600.0


@dataclass
class ReasonerConfig:
    """Configuration for the LLM reasoner.

    Attributes:
        provider: LLM provider ("anthropic" or "openai").
        model: Model name (defaults based on provider).
        max_retries: Maximum attempts per request.
        retry_delay: Initial delay between retries, doubled each attempt.
        min_interval_seconds: Minimum spacing between requests.
        temperature: LLM temperature (0.0-1.0).
        max_tokens: Maximum tokens in a response.
        max_length: Maximum characters in a prompt or response.
    """

    provider: str = "openai"
    model: str | None = None
    max_retries: int = 3
    retry_delay: float = 1.0
    min_interval_seconds: float = 1.0
    temperature: float = 0.3
    max_tokens: int = 1024
    max_length: int = MAX_LENGTH


class LLMUsage(BaseModel):
    """Snapshot of reasoner usage."""

    enabled: bool
    total_requests: int = 0
    requests_last_10_min: int = 0
    total_input_chars: int = 0
    total_output_chars: int = 0

    model_config = {"frozen": True}


class LLMReasoner(Reasoner):
    """Reasoner that talks to a hosted LLM.

    Attributes:
        config: Reasoner configuration.
    """

    def __init__(
        self,
        config: ReasonerConfig | None = None,
        api_key: str | None = None,
        client: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the reasoner.

        Args:
            config: Reasoner configuration. Uses defaults if None.
            api_key: API key for the provider. Falls back to environment.
            client: Pre-built async provider client. Created lazily if None.
            clock: Monotonic clock used for spacing and usage windows.

        Raises:
            ValueError: If the provider is not supported.
        """
        self.config = config or ReasonerConfig()
        if self.config.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider: {self.config.provider}. "
                f"Must be one of {VALID_PROVIDERS}"
            )
        if self.config.model is None:
            self.config.model = DEFAULT_MODELS[self.config.provider]

        self._api_key = api_key
        self._client = client
        self._clock = clock
        self._enabled = True

        self._throttle_lock = asyncio.Lock()
        self._last_request_at: float | None = None

        self._total_requests = 0
        self._request_times: deque[float] = deque()
        self._total_input_chars = 0
        self._total_output_chars = 0

        logger.debug(f"LLMReasoner initialized: {self.config.provider}/{self.config.model}")

    # ------------------------------------------------------------------
    # Toggle and usage
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        logger.info(f"LLM requests {'enabled' if enabled else 'disabled'}")

    def toggle_enabled(self) -> bool:
        """Flip the enable switch and return the new value."""
        self.set_enabled(not self._enabled)
        return self._enabled

    def usage(self) -> LLMUsage:
        """Get a snapshot of request and character counts."""
        cutoff = self._clock() - USAGE_WINDOW_SECONDS
        while self._request_times and self._request_times[0] < cutoff:
            self._request_times.popleft()
        return LLMUsage(
            enabled=self._enabled,
            total_requests=self._total_requests,
            requests_last_10_min=len(self._request_times),
            total_input_chars=self._total_input_chars,
            total_output_chars=self._total_output_chars,
        )

    # ------------------------------------------------------------------
    # Reasoner interface
    # ------------------------------------------------------------------

    async def complete(self, prompt: str) -> str:
        self._admit(len(prompt))
        if self.config.provider == "anthropic":
            text = await self._with_retry(lambda: self._complete_anthropic(prompt))
        else:
            text = await self._with_retry(lambda: self._complete_openai(prompt))
        if not text:
            raise ReasonerError("No valid response content from the reasoner.")
        self._account_output(len(text))
        return text

    async def chat(
        self,
        messages: list[TranscriptMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ReasonerReply:
        self._admit(sum(len(m.content) for m in messages))
        if self.config.provider == "anthropic":
            reply = await self._with_retry(lambda: self._chat_anthropic(messages, tools))
        else:
            reply = await self._with_retry(lambda: self._chat_openai(messages, tools))
        output = len(reply.text or "") + sum(len(i.arguments) for i in reply.invocations)
        self._account_output(output)
        return reply

    # ------------------------------------------------------------------
    # Request bookkeeping
    # ------------------------------------------------------------------

    def _admit(self, input_chars: int) -> None:
        if not self._enabled:
            raise ReasonerError("LLM requests are disabled.")
        if input_chars > self.config.max_length:
            raise ReasonerError(
                f"Prompt length ({input_chars}) exceeds maximum allowed length "
                f"of {self.config.max_length} characters."
            )
        self._total_requests += 1
        self._request_times.append(self._clock())
        self._total_input_chars += input_chars

    def _account_output(self, output_chars: int) -> None:
        if output_chars > self.config.max_length:
            raise ReasonerError(
                f"LLM response length ({output_chars}) exceeds maximum allowed "
                f"({self.config.max_length})."
            )
        self._total_output_chars += output_chars

    async def _throttle(self) -> None:
        async with self._throttle_lock:
            if self._last_request_at is not None:
                wait = self.config.min_interval_seconds - (self._clock() - self._last_request_at)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request_at = self._clock()

    async def _with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call`` with exponential backoff.

        Raises:
            ReasonerError: If all retries fail, or immediately on a
                configuration problem.
        """
        config = self.config
        last_error: Exception | None = None

        for attempt in range(config.max_retries):
            await self._throttle()
            try:
                return await call()
            except ReasonerError:
                raise
            except Exception as e:
                last_error = e
                if attempt < config.max_retries - 1:
                    delay = config.retry_delay * (2**attempt)
                    logger.warning(
                        f"LLM call failed (attempt {attempt + 1}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)

        raise ReasonerError(
            f"LLM call failed after {config.max_retries} attempts: {last_error}"
        ) from last_error

    # ------------------------------------------------------------------
    # Provider clients
    # ------------------------------------------------------------------

    def _resolve_api_key(self) -> str:
        env_name = API_KEY_ENV[self.config.provider]
        api_key = self._api_key or os.environ.get(env_name)
        if not api_key:
            raise ReasonerError(
                f"{env_name} not set. Set it in environment or pass to constructor."
            )
        return api_key

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if self.config.provider == "anthropic":
            try:
                import anthropic
            except ImportError as e:
                raise ReasonerError(
                    "anthropic package not installed. Run: pip install anthropic"
                ) from e
            self._client = anthropic.AsyncAnthropic(api_key=self._resolve_api_key())
        else:
            try:
                import openai
            except ImportError as e:
                raise ReasonerError(
                    "openai package not installed. Run: pip install openai"
                ) from e
            self._client = openai.AsyncOpenAI(api_key=self._resolve_api_key())
        return self._client

    # OpenAI -----------------------------------------------------------

    async def _complete_openai(self, prompt: str) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""

    async def _chat_openai(
        self,
        messages: list[TranscriptMessage],
        tools: list[dict[str, Any]] | None,
    ) -> ReasonerReply:
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [to_openai_message(m) for m in messages],
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
            kwargs["parallel_tool_calls"] = False
        response = await client.chat.completions.create(**kwargs)
        message = response.choices[0].message
        invocations = [
            ToolInvocation(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (message.tool_calls or [])
        ]
        return ReasonerReply(text=message.content, invocations=invocations)

    # Anthropic --------------------------------------------------------

    async def _complete_anthropic(self, prompt: str) -> str:
        client = self._get_client()
        message = await client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )

    async def _chat_anthropic(
        self,
        messages: list[TranscriptMessage],
        tools: list[dict[str, Any]] | None,
    ) -> ReasonerReply:
        client = self._get_client()
        system, turns = to_anthropic_messages(messages)
        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": turns,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [to_anthropic_tool(t) for t in tools]
            kwargs["tool_choice"] = {"type": "auto", "disable_parallel_tool_use": True}
        message = await client.messages.create(**kwargs)

        texts: list[str] = []
        invocations: list[ToolInvocation] = []
        for block in message.content:
            block_type = getattr(block, "type", "")
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use":
                invocations.append(
                    ToolInvocation(id=block.id, name=block.name, arguments=json.dumps(block.input))
                )
        return ReasonerReply(text="".join(texts) or None, invocations=invocations)


def to_openai_message(message: TranscriptMessage) -> dict[str, Any]:
    """Convert a transcript message to the chat-completions format."""
    if message.role == MessageRole.TOOL:
        return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}
    if message.role == MessageRole.ASSISTANT and message.tool_calls:
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in message.tool_calls
            ],
        }
    return {"role": str(message.role), "content": message.content}


def to_anthropic_tool(schema: dict[str, Any]) -> dict[str, Any]:
    """Convert a chat-completions function schema to an Anthropic tool."""
    function = schema.get("function", schema)
    return {
        "name": function["name"],
        "description": function.get("description", ""),
        "input_schema": function.get("parameters", {"type": "object", "properties": {}}),
    }


def to_anthropic_messages(
    messages: list[TranscriptMessage],
) -> tuple[str, list[dict[str, Any]]]:
    """Split a transcript into an Anthropic system prompt and alternating turns.

    Tool results become ``tool_result`` blocks on a user turn; consecutive
    turns of the same role are merged.
    """
    system_parts: list[str] = []
    turns: list[dict[str, Any]] = []

    def append(role: str, blocks: list[dict[str, Any]]) -> None:
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"].extend(blocks)
        else:
            turns.append({"role": role, "content": blocks})

    for message in messages:
        if message.role == MessageRole.SYSTEM:
            system_parts.append(message.content)
        elif message.role == MessageRole.TOOL:
            append(
                "user",
                [
                    {
                        "type": "tool_result",
                        "tool_use_id": message.tool_call_id,
                        "content": message.content,
                    }
                ],
            )
        elif message.role == MessageRole.ASSISTANT:
            blocks: list[dict[str, Any]] = []
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                try:
                    arguments = json.loads(call.arguments) if call.arguments.strip() else {}
                except json.JSONDecodeError:
                    arguments = {}
                if not isinstance(arguments, dict):
                    arguments = {}
                blocks.append(
                    {"type": "tool_use", "id": call.id, "name": call.name, "input": arguments}
                )
            if blocks:
                append("assistant", blocks)
        elif message.content:
            append("user", [{"type": "text", "text": message.content}])

    return "\n\n".join(system_parts), turns
