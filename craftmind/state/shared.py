"""Shared state store: the single in-memory record owned by one agent.

Every component reads and writes this object. There is no locking: all
writers run on one event loop and only interleave at ``await`` points, so
code between suspension points sees a consistent view.

Field ownership:
    - perception snapshot and vitals: written by the controller from the
      perception collaborator, read-only elsewhere
    - memory indices: written by the memory subsystem
    - goal stack: written by the goal manager
    - social ledgers: written by the social ledger
    - event log: append-only, written by anyone
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any

from craftmind.models.log import LogEntry, LogRole
from craftmind.models.world import (
    Coordinate,
    EquippedItems,
    MobSighting,
    Sentiment,
    Vitals,
)

logger = logging.getLogger(__name__)

# Relative distance change needed before a mob shows up in a state diff
MOB_DISTANCE_CHANGE_RATIO = 0.15


class SharedAgentState:
    """Centralized store each component reads from and writes to.

    Example:
        >>> state = SharedAgentState()
        >>> state.current_long_term_goal = "Acquire wooden pickaxe (1)"
        >>> state.current_short_term_goal = "Get wood(5)"
        >>> state.current_long_term_goal = None
        >>> state.current_short_term_goal is None
        True
    """

    def __init__(self, agent_name: str = "agent") -> None:
        self._agent_name = agent_name

        # Perception snapshot
        self._visible_blocks: dict[str, Coordinate] = {}
        self._visible_mobs: list[MobSighting] = []
        self._players_nearby: list[str] = []

        # Vitals
        self._inventory: list[str] = []
        self._health: float = 20.0
        self._hunger: float = 20.0
        self._position: Coordinate | None = None
        self._equipped_items = EquippedItems()

        # Memory indices
        self._short_term_memory: OrderedDict[str, str] = OrderedDict()
        self._long_term_memory: dict[str, str] = {}
        self._location_memory: dict[str, Coordinate] = {}

        # Goal stack
        self._long_term_goal_queue: list[str] = []
        self._current_long_term_goal: str | None = None
        self._current_short_term_goal: str | None = None
        self._short_term_queue: list[str] = []
        self._locked_in_task = False

        self._pending_actions: list[str] = []
        self._defensive_response_requested = False

        # Social ledgers
        self._feelings_to_others: dict[str, Sentiment] = {}
        self._others_feelings_towards_self: dict[str, Sentiment] = {}

        self._event_log: list[LogEntry] = []
        self._last_diff_snapshot: tuple[float, float, list[MobSighting]] | None = None

    @property
    def agent_name(self) -> str:
        """Name of the agent that owns this store."""
        return self._agent_name

    # ------------------------------------------------------------------
    # Perception snapshot
    # ------------------------------------------------------------------

    @property
    def visible_blocks(self) -> dict[str, Coordinate]:
        """Nearest coordinate of every visible block type."""
        return self._visible_blocks

    @visible_blocks.setter
    def visible_blocks(self, blocks: dict[str, Coordinate]) -> None:
        self._visible_blocks = dict(blocks)

    @property
    def visible_mobs(self) -> list[MobSighting]:
        """Visible mobs with their distances."""
        return self._visible_mobs

    @visible_mobs.setter
    def visible_mobs(self, mobs: list[MobSighting]) -> None:
        self._visible_mobs = list(mobs)

    @property
    def players_nearby(self) -> list[str]:
        """Names of nearby players."""
        return self._players_nearby

    @players_nearby.setter
    def players_nearby(self, players: list[str]) -> None:
        self._players_nearby = list(players)

    # ------------------------------------------------------------------
    # Vitals
    # ------------------------------------------------------------------

    @property
    def inventory(self) -> list[str]:
        """Inventory lines formatted as ``item:count``."""
        return self._inventory

    @inventory.setter
    def inventory(self, lines: list[str]) -> None:
        self._inventory = list(lines)

    @property
    def health(self) -> float:
        return self._health

    @health.setter
    def health(self, value: float) -> None:
        self._health = value

    @property
    def hunger(self) -> float:
        return self._hunger

    @hunger.setter
    def hunger(self, value: float) -> None:
        self._hunger = value

    @property
    def position(self) -> Coordinate | None:
        return self._position

    @position.setter
    def position(self, value: Coordinate | None) -> None:
        self._position = value

    @property
    def equipped_items(self) -> EquippedItems:
        return self._equipped_items

    @equipped_items.setter
    def equipped_items(self, value: EquippedItems) -> None:
        self._equipped_items = value

    def apply_vitals(self, vitals: Vitals) -> None:
        """Overwrite health, hunger, position and equipment in one step."""
        self._health = vitals.health
        self._hunger = vitals.hunger
        self._position = vitals.position
        self._equipped_items = vitals.equipped_items

    def inventory_counts(self) -> dict[str, int]:
        """Parse inventory lines into an item to count mapping.

        Lines without a numeric count are treated as a single item. Repeated
        items are summed.
        """
        counts: dict[str, int] = {}
        for line in self._inventory:
            name, sep, raw_count = line.rpartition(":")
            if not sep:
                name, raw_count = line, "1"
            name = name.strip()
            if not name:
                continue
            try:
                count = int(raw_count.strip())
            except ValueError:
                count = 1
            counts[name] = counts.get(name, 0) + count
        return counts

    # ------------------------------------------------------------------
    # Memory indices
    # ------------------------------------------------------------------

    @property
    def short_term_memory(self) -> OrderedDict[str, str]:
        """Short-term index ordered from least to most recently touched."""
        return self._short_term_memory

    @property
    def long_term_memory(self) -> dict[str, str]:
        return self._long_term_memory

    @property
    def location_memory(self) -> dict[str, Coordinate]:
        return self._location_memory

    def add_short_term_memory(self, key: str, value: str) -> None:
        """Insert or touch a short-term entry, moving it to the MRU end.

        Capacity is not enforced here; use :class:`craftmind.memory.Memory`
        for bounded access.
        """
        self._short_term_memory[key] = value
        self._short_term_memory.move_to_end(key)

    def remove_short_term_memory(self, key: str) -> str | None:
        """Remove a short-term entry and return its value, if present."""
        return self._short_term_memory.pop(key, None)

    def add_long_term_memory(self, key: str, value: str) -> None:
        self._long_term_memory[key] = value

    def add_location_memory(self, key: str, coords: Coordinate) -> None:
        """Remember a named location."""
        self._location_memory[key] = coords

    # ------------------------------------------------------------------
    # Goal stack
    # ------------------------------------------------------------------

    @property
    def long_term_goal_queue(self) -> list[str]:
        """Pending long-term goals, oldest first."""
        return self._long_term_goal_queue

    @long_term_goal_queue.setter
    def long_term_goal_queue(self, queue: list[str]) -> None:
        self._long_term_goal_queue = list(queue)

    @property
    def current_long_term_goal(self) -> str | None:
        return self._current_long_term_goal

    @current_long_term_goal.setter
    def current_long_term_goal(self, goal: str | None) -> None:
        self._current_long_term_goal = goal
        if goal is None:
            self._current_short_term_goal = None
            self._short_term_queue = []
            self._locked_in_task = False

    @property
    def current_short_term_goal(self) -> str | None:
        return self._current_short_term_goal

    @current_short_term_goal.setter
    def current_short_term_goal(self, goal: str | None) -> None:
        if goal is not None and self._current_long_term_goal is None:
            raise ValueError("Cannot set a short-term goal without a current long-term goal")
        self._current_short_term_goal = goal

    @property
    def short_term_queue(self) -> list[str]:
        """Remaining substeps of the current long-term goal."""
        return self._short_term_queue

    @short_term_queue.setter
    def short_term_queue(self, steps: list[str]) -> None:
        self._short_term_queue = list(steps)

    @property
    def locked_in_task(self) -> bool:
        """Whether replanning is suppressed until the short-term goal completes."""
        return self._locked_in_task

    @locked_in_task.setter
    def locked_in_task(self, value: bool) -> None:
        self._locked_in_task = value

    @property
    def pending_actions(self) -> list[str]:
        return self._pending_actions

    def add_pending_action(self, action: str) -> None:
        self._pending_actions.append(action)

    @property
    def defensive_response_requested(self) -> bool:
        """Set by the fast loop when a hostile mob is too close."""
        return self._defensive_response_requested

    @defensive_response_requested.setter
    def defensive_response_requested(self, value: bool) -> None:
        self._defensive_response_requested = value

    # ------------------------------------------------------------------
    # Social ledgers
    # ------------------------------------------------------------------

    @property
    def feelings_to_others(self) -> dict[str, Sentiment]:
        return self._feelings_to_others

    @property
    def others_feelings_towards_self(self) -> dict[str, Sentiment]:
        return self._others_feelings_towards_self

    def update_feelings_towards(self, person: str, sentiment: float, reasons: list[str]) -> None:
        """Record how the agent feels about ``person``."""
        self._feelings_to_others[person] = Sentiment(sentiment=sentiment, reasons=list(reasons))

    def update_others_feelings_towards_self(
        self, person: str, sentiment: float, reasons: list[str]
    ) -> None:
        """Record how ``person`` feels about the agent."""
        self._others_feelings_towards_self[person] = Sentiment(
            sentiment=sentiment, reasons=list(reasons)
        )

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    @property
    def event_log(self) -> tuple[LogEntry, ...]:
        """Immutable view of the event log."""
        return tuple(self._event_log)

    def log_message(
        self,
        role: LogRole | str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> LogEntry:
        """Append an entry to the event log and return it."""
        entry = LogEntry(role=LogRole(role), content=content, metadata=metadata)
        self._event_log.append(entry)
        logger.debug(f"[{self._agent_name}] {entry.role}: {content[:200]}")
        return entry

    def events_since(self, index: int) -> list[LogEntry]:
        """Return entries appended at or after ``index``."""
        if index < 0:
            index = 0
        return self._event_log[index:]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_text(self) -> str:
        """Render a human-readable summary of the store for the reasoner."""
        blocks = ", ".join(f"{name} at {coords}" for name, coords in self._visible_blocks.items())
        mobs = ", ".join(f"{m.name} ({m.distance:.1f}m)" for m in self._visible_mobs)
        locations = ", ".join(f"{k}: {v}" for k, v in self._location_memory.items())
        short_term = "; ".join(f"{k}: {v}" for k, v in self._short_term_memory.items())
        feelings = ", ".join(
            f"{person}: {s.sentiment:+.0f}" for person, s in self._feelings_to_others.items()
        )
        lines = [
            f"Visible Blocks: {blocks or 'none'}",
            f"Visible Mobs: {mobs or 'none'}",
            f"Players Nearby: {', '.join(self._players_nearby) or 'none'}",
            f"Inventory: {', '.join(self._inventory) or 'empty'}",
            f"Health: {self._health:g}/20",
            f"Hunger: {self._hunger:g}/20",
            f"Position: {self._position if self._position is not None else 'unknown'}",
            f"Long-Term Goal: {self._current_long_term_goal or 'none'}",
            f"Short-Term Goal: {self._current_short_term_goal or 'none'}",
            f"Locked In: {self._locked_in_task}",
            f"Short-Term Memory: {short_term or 'none'}",
            f"Known Locations: {locations or 'none'}",
            f"Feelings Towards Others: {feelings or 'none'}",
        ]
        return "\n".join(lines)

    def diff_text(self) -> str:
        """Describe health, hunger and mob changes since the previous call.

        The first call only captures a snapshot.
        """
        mobs = list(self._visible_mobs)
        if self._last_diff_snapshot is None:
            self._last_diff_snapshot = (self._health, self._hunger, mobs)
            return "No previous snapshot to diff; capturing current state."

        old_health, old_hunger, old_mobs = self._last_diff_snapshot
        differences: list[str] = []

        if self._health != old_health:
            differences.append(f"Health changed from {old_health:g} to {self._health:g}")
        if self._hunger != old_hunger:
            differences.append(f"Hunger changed from {old_hunger:g} to {self._hunger:g}")

        old_by_name = {m.name: m for m in old_mobs}
        new_by_name = {m.name: m for m in mobs}
        for name in old_by_name:
            if name not in new_by_name:
                differences.append(f'Mob "{name}" no longer visible')
        for name, mob in new_by_name.items():
            if name not in old_by_name:
                differences.append(f'New mob visible: "{name}" at ~{mob.distance:g}m')
        for name, old in old_by_name.items():
            new = new_by_name.get(name)
            if new is None or old.distance == 0:
                continue
            if abs(new.distance - old.distance) / old.distance >= MOB_DISTANCE_CHANGE_RATIO:
                differences.append(
                    f'Mob "{name}" distance changed from {old.distance:.1f}m to {new.distance:.1f}m'
                )

        self._last_diff_snapshot = (self._health, self._hunger, mobs)
        if not differences:
            return "No notable changes since last tick."
        return f"State Diff: < {' | '.join(differences)} >"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the store into JSON-safe primitives."""
        return {
            "agent_name": self._agent_name,
            "visible_blocks": {k: v.model_dump() for k, v in self._visible_blocks.items()},
            "visible_mobs": [m.model_dump() for m in self._visible_mobs],
            "players_nearby": list(self._players_nearby),
            "inventory": list(self._inventory),
            "health": self._health,
            "hunger": self._hunger,
            "position": self._position.model_dump() if self._position else None,
            "equipped_items": self._equipped_items.model_dump(),
            "short_term_memory": dict(self._short_term_memory),
            "long_term_memory": dict(self._long_term_memory),
            "location_memory": {k: v.model_dump() for k, v in self._location_memory.items()},
            "long_term_goal_queue": list(self._long_term_goal_queue),
            "current_long_term_goal": self._current_long_term_goal,
            "current_short_term_goal": self._current_short_term_goal,
            "short_term_queue": list(self._short_term_queue),
            "locked_in_task": self._locked_in_task,
            "pending_actions": list(self._pending_actions),
            "defensive_response_requested": self._defensive_response_requested,
            "feelings_to_others": {
                k: v.model_dump() for k, v in self._feelings_to_others.items()
            },
            "others_feelings_towards_self": {
                k: v.model_dump() for k, v in self._others_feelings_towards_self.items()
            },
            "event_log_length": len(self._event_log),
        }
