"""Bounded retry for movement and path-finding timeouts.

Only timeout-class failures are retried, with a fixed backoff. Every other
failure propagates on the first attempt. When the retry budget runs out
the timeout surfaces as a plain :class:`ActionError`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from craftmind.interfaces.actions import ActionCollaborator, ActionError, PathfindTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TimeoutRetryPolicy:
    """Retry budget for timeout-class failures.

    Attributes:
        pathfind_retries: Extra attempts after the first timeout.
        backoff_seconds: Fixed delay before each retry.
    """

    pathfind_retries: int = 2
    backoff_seconds: float = 1.0

    @classmethod
    def for_profile(cls, profile: str) -> TimeoutRetryPolicy:
        """Resolve a named profile (conservative, balanced, aggressive)."""
        normalized = profile.strip().lower()
        if normalized == "conservative":
            return cls(pathfind_retries=1, backoff_seconds=2.0)
        if normalized == "aggressive":
            return cls(pathfind_retries=4, backoff_seconds=0.5)
        return cls()


def is_timeout(error: BaseException) -> bool:
    """Whether ``error`` belongs to the retryable timeout class."""
    return isinstance(error, (PathfindTimeout, TimeoutError))


class TimeoutRetryingActions(ActionCollaborator):
    """Action collaborator wrapper that retries timeouts.

    Example:
        >>> actions = TimeoutRetryingActions(bot_actions, TimeoutRetryPolicy(pathfind_retries=3))
        >>> await actions.mine("oak_log", 5)
    """

    def __init__(
        self,
        inner: ActionCollaborator,
        policy: TimeoutRetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._inner = inner
        self._policy = policy or TimeoutRetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> TimeoutRetryPolicy:
        return self._policy

    async def _call(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        budget = self._policy.pathfind_retries
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not is_timeout(e):
                    raise
                if attempt >= budget:
                    logger.error(f"[RETRY] {name} timed out, budget exhausted ({attempt}/{budget})")
                    raise ActionError(f"{name} timed out after {attempt + 1} attempts: {e}") from e
                attempt += 1
                logger.warning(f"[RETRY] {name} timed out, attempt {attempt}/{budget}: {e}")
                await self._sleep(self._policy.backoff_seconds)

    async def mine(self, block: str, count: int) -> None:
        await self._call("mine", lambda: self._inner.mine(block, count))

    async def craft(self, item: str, amount: int = 1) -> None:
        await self._call("craft", lambda: self._inner.craft(item, amount))

    async def place(self, block_type: str) -> None:
        await self._call("place", lambda: self._inner.place(block_type))

    async def attack(self, mob_type: str) -> None:
        await self._call("attack", lambda: self._inner.attack(mob_type))

    async def smelt(self, input_item: str, output_item: str, quantity: int) -> None:
        await self._call("smelt", lambda: self._inner.smelt(input_item, output_item, quantity))

    async def plant_crop(self, name: str) -> None:
        await self._call("plant_crop", lambda: self._inner.plant_crop(name))

    async def harvest_crop(self, name: str, count_or_all: int | str) -> None:
        await self._call("harvest_crop", lambda: self._inner.harvest_crop(name, count_or_all))

    async def sort_inventory(self) -> None:
        await self._call("sort_inventory", self._inner.sort_inventory)

    async def place_chest(self) -> None:
        await self._call("place_chest", self._inner.place_chest)

    async def store_item_in_chest(self, item: str, count: int) -> None:
        await self._call("store_item_in_chest", lambda: self._inner.store_item_in_chest(item, count))

    async def retrieve_item_from_chest(self, item: str, count: int) -> None:
        await self._call(
            "retrieve_item_from_chest", lambda: self._inner.retrieve_item_from_chest(item, count)
        )

    async def chat(self, text: str) -> None:
        await self._inner.chat(text)
