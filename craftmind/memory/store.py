"""Bounded short-term memory with recency eviction into long-term memory.

The indices themselves live on :class:`SharedAgentState`; this module only
enforces capacity and promotion policy on top of them.

Example:
    >>> from craftmind.state import SharedAgentState
    >>> memory = Memory(SharedAgentState(), capacity=2)
    >>> memory.add_short_term_memory("a", "first")
    >>> memory.add_short_term_memory("b", "second")
    >>> memory.add_short_term_memory("c", "third")
    >>> memory.get_long_term_memory("a")
    'first'
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from craftmind.models.world import Coordinate
from craftmind.state.shared import SharedAgentState

logger = logging.getLogger(__name__)

DEFAULT_SHORT_TERM_CAPACITY = 10

PromotionPredicate = Callable[[str, str], bool]


def always_promote(key: str, value: str) -> bool:
    """Default promotion policy: every evicted entry goes to long-term memory."""
    return True


class Memory:
    """Short-term, long-term and location memory for one agent.

    Attributes:
        capacity: Maximum number of short-term keys.
    """

    def __init__(
        self,
        state: SharedAgentState,
        capacity: int = DEFAULT_SHORT_TERM_CAPACITY,
        promote: PromotionPredicate = always_promote,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._state = state
        self.capacity = capacity
        self._promote = promote

    def add_short_term_memory(self, key: str, value: str) -> None:
        """Insert or touch ``key``; evicts the least recently touched key on overflow."""
        self._state.add_short_term_memory(key, value)
        stm = self._state.short_term_memory
        while len(stm) > self.capacity:
            oldest_key, oldest_value = stm.popitem(last=False)
            logger.debug(f"Evicting short-term memory '{oldest_key}'")
            self._maybe_promote(oldest_key, oldest_value)

    def get_short_term_memory(self, key: str) -> str | None:
        """Return the value for ``key`` and mark it most recently used."""
        stm = self._state.short_term_memory
        if key not in stm:
            return None
        stm.move_to_end(key)
        return stm[key]

    def remove_short_term_memory(self, key: str) -> None:
        """Remove ``key`` from short-term memory, running promotion on it."""
        value = self._state.remove_short_term_memory(key)
        if value is not None:
            self._maybe_promote(key, value)

    def get_long_term_memory(self, key: str) -> str | None:
        return self._state.long_term_memory.get(key)

    def add_location_memory(self, key: str, coords: Coordinate) -> None:
        self._state.add_location_memory(key, coords)

    def get_location_memory(self, key: str) -> Coordinate | None:
        return self._state.location_memory.get(key)

    def _maybe_promote(self, key: str, value: str) -> None:
        if self._promote(key, value):
            self._state.add_long_term_memory(key, value)
            logger.debug(f"Promoted '{key}' to long-term memory")
