"""Reasoner-driven memory consolidation.

After a dispatch cycle, the reasoner reviews the most recent event-log
entries and decides what to remember through a small memory tool menu.
The same :class:`ToolDispatcher` loop that drives world actions runs here,
with a lower round limit and memory-tagged log entries.
"""

from __future__ import annotations

import logging
import time

from pydantic import Field

from craftmind.core.dispatch import FALLBACK_RESPONSE, DispatchConfig, ToolDispatcher
from craftmind.core.metrics import MetricsCollector
from craftmind.core.prompts.agent_prompts import build_memory_prompt
from craftmind.core.tools import ToolArgs, ToolMenu, ToolSpec
from craftmind.interfaces.reasoner import Reasoner
from craftmind.memory.store import Memory
from craftmind.models.log import LogRole
from craftmind.models.messages import TranscriptMessage
from craftmind.models.world import Coordinate
from craftmind.state.shared import SharedAgentState

logger = logging.getLogger(__name__)

DEFAULT_ROUND_LIMIT = 5
DEFAULT_RECENT_EVENTS = 10
NO_MEMORY_UPDATE = "No final memory update from model after function calls."


class MemoryKeyArgs(ToolArgs):
    name: str = Field(..., description="The identifier for the memory entry")


class AddMemoryArgs(ToolArgs):
    name: str = Field(..., description="The identifier for the memory entry")
    info: str = Field(..., description="The information to store")


class AddLocationArgs(ToolArgs):
    name: str = Field(..., description="The identifier for the location")
    description: str = Field(default="", description="What is at this location")
    coords: Coordinate


def build_memory_menu(memory: Memory) -> ToolMenu:
    """Build the tool menu used during consolidation."""

    async def add_short_term(args: AddMemoryArgs) -> str:
        memory.add_short_term_memory(args.name, args.info)
        return f'Added short term memory with key "{args.name}".'

    async def get_short_term(args: MemoryKeyArgs) -> str:
        return f'Retrieved short term memory for "{args.name}": {memory.get_short_term_memory(args.name)}'

    async def remove_short_term(args: MemoryKeyArgs) -> str:
        memory.remove_short_term_memory(args.name)
        return f'Removed short term memory with key "{args.name}".'

    async def get_long_term(args: MemoryKeyArgs) -> str:
        return f'Retrieved long term memory for "{args.name}": {memory.get_long_term_memory(args.name)}'

    async def add_location(args: AddLocationArgs) -> str:
        memory.add_location_memory(args.name, args.coords)
        return f'Added location memory "{args.name}".'

    async def get_location(args: MemoryKeyArgs) -> str:
        return f'Retrieved location memory "{args.name}": {memory.get_location_memory(args.name)}'

    return ToolMenu(
        [
            ToolSpec(
                "addShortTermMemory",
                "Adds a short term memory entry with the given name and information.",
                AddMemoryArgs,
                add_short_term,
            ),
            ToolSpec(
                "getShortTermMemory",
                "Retrieves a short term memory entry by name and refreshes its recency.",
                MemoryKeyArgs,
                get_short_term,
            ),
            ToolSpec(
                "removeShortTermMemory",
                "Removes a short term memory entry by name and moves it to long term memory.",
                MemoryKeyArgs,
                remove_short_term,
            ),
            ToolSpec(
                "getLongTermMemory",
                "Retrieves a long term memory entry by name.",
                MemoryKeyArgs,
                get_long_term,
            ),
            ToolSpec(
                "addLocationMemory",
                "Adds a location memory with an identifier, description and coordinates.",
                AddLocationArgs,
                add_location,
            ),
            ToolSpec(
                "getLocationMemory",
                "Retrieves a location memory by name.",
                MemoryKeyArgs,
                get_location,
            ),
        ]
    )


class MemoryConsolidator:
    """Turns recent events into stored memories.

    Attributes:
        recent_events: How many trailing event-log entries the reasoner sees.
    """

    def __init__(
        self,
        reasoner: Reasoner,
        memory: Memory,
        state: SharedAgentState,
        *,
        round_limit: int = DEFAULT_ROUND_LIMIT,
        recent_events: int = DEFAULT_RECENT_EVENTS,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._memory = memory
        self._state = state
        self.recent_events = recent_events
        self._dispatcher = ToolDispatcher(
            reasoner,
            build_memory_menu(memory),
            state,
            config=DispatchConfig(round_limit=round_limit, include_state_diff=False),
            metrics=metrics,
            tool_log_role=LogRole.MEMORY,
            component="memory",
        )

    async def consolidate(self, final_response: str = "") -> str:
        """Run one consolidation pass and store its summary.

        Args:
            final_response: Final text of the dispatch cycle being consolidated.

        Returns:
            The summary stored under a ``memory_<timestamp>`` short-term key.
        """
        events = [f"{e.role}: {e.content}" for e in self._state.event_log[-self.recent_events :]]
        if final_response:
            events.append(f"final response: {final_response}")
        prompt = build_memory_prompt(events)

        summary = await self._dispatcher.dispatch([TranscriptMessage.system(prompt)])
        if summary == FALLBACK_RESPONSE:
            summary = NO_MEMORY_UPDATE

        key = f"memory_{int(time.time() * 1000)}"
        self._memory.add_short_term_memory(key, summary)
        self._state.log_message(LogRole.MEMORY, f"Memory updated via reasoner: {summary}")
        logger.debug(f"Stored consolidated memory {key}")
        return summary
