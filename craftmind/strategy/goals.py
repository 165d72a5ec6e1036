"""Goal stack management over the shared state store.

The goal stack is a FIFO queue of long-term goals, the current long-term
goal, the current short-term goal with its remaining sibling substeps, and
a locked-in flag. All of it lives on :class:`SharedAgentState`; this module
provides the transitions the controller drives:

    NO_GOAL -> HAS_LONG_TERM -> HAS_SHORT_TERM -> LOCKED_IN
                                     ^________________|  (completion)

When the substeps run out, the next queued long-term goal becomes current,
or the stack returns to NO_GOAL.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from enum import StrEnum

from craftmind.state.shared import SharedAgentState
from craftmind.strategy.calls import normalize_item

logger = logging.getLogger(__name__)

GoalPredicate = Callable[[str, SharedAgentState], bool]

# Verbs that make a short-term goal checkable against the inventory
ACQUIRE_VERBS = ("get", "gather", "mine", "collect", "craft", "acquire", "obtain", "harvest", "loot", "smelt", "retrieve")

_QUANTITY_RE = re.compile(r"^\s*(?P<verb>[A-Za-z]+)\s+(?P<item>.+?)\s*\(\s*(?P<count>\d+)\s*\)", re.IGNORECASE)

# Goal wording that names a family of inventory items
_ITEM_ALIASES = {
    "wood": "log",
    "wood_log": "log",
    "wooden_plank": "plank",
    "wood_plank": "plank",
    "plank": "plank",
}


class GoalState(StrEnum):
    """States of the goal state machine."""

    NO_GOAL = "no_goal"
    HAS_LONG_TERM = "has_long_term_no_short_term"
    HAS_SHORT_TERM = "has_short_term"
    LOCKED_IN = "locked_in"


def _singular(name: str) -> str:
    if name.endswith("es") and name[:-2].endswith(("ch", "sh", "x")):
        return name[:-2]
    if name.endswith("s") and not name.endswith("ss"):
        return name[:-1]
    return name


def parse_goal_quantity(goal: str) -> tuple[str, int] | None:
    """Extract ``(item, count)`` from goal text such as ``"Get wood(5)"``.

    Only goals that start with an acquisition verb qualify. For smelting
    goals written as ``"smelt X to get Y(n)"`` the item is ``Y``.
    """
    match = _QUANTITY_RE.match(goal)
    if match is None or match.group("verb").lower() not in ACQUIRE_VERBS:
        return None
    item = match.group("item")
    lowered = item.lower()
    if " to get " in lowered:
        item = item[lowered.index(" to get ") + len(" to get ") :]
    elif " into " in lowered:
        item = item[lowered.index(" into ") + len(" into ") :]
    name = normalize_item(item)
    if not name:
        return None
    return name, int(match.group("count"))


def count_matching_items(item: str, inventory: dict[str, int]) -> int:
    """Sum inventory counts of entries that satisfy ``item``.

    ``"wood"`` matches any ``*_log`` entry and plurals match singulars.
    """
    target = _singular(item)
    suffix = _ITEM_ALIASES.get(target)
    total = 0
    for key, count in inventory.items():
        name = _singular(normalize_item(key))
        if name == target or (suffix is not None and (name == suffix or name.endswith(f"_{suffix}"))):
            total += count
    return total


def default_commit_predicate(goal: str, state: SharedAgentState) -> bool:
    """Commit to goals whose completion can be checked against the inventory."""
    return parse_goal_quantity(goal) is not None


def default_completion_predicate(goal: str, state: SharedAgentState) -> bool:
    """A goal is done once the inventory holds the quantity it names."""
    parsed = parse_goal_quantity(goal)
    if parsed is None:
        return False
    item, count = parsed
    return count_matching_items(item, state.inventory_counts()) >= count


class GoalManager:
    """Drives goal-stack transitions on a shared state store.

    - add_long_term_goal: set the goal now if idle, otherwise queue it
    - set_short_term_plan: first substep becomes current, the rest queue
    - lock / complete_short_term: commit to and finish a short-term goal
    - advance_long_term_goal: move on to the next queued long-term goal
    """

    def __init__(self, state: SharedAgentState) -> None:
        self._state = state

    @property
    def goal_state(self) -> GoalState:
        """Current state of the goal state machine."""
        st = self._state
        if st.current_long_term_goal is None:
            return GoalState.NO_GOAL
        if st.current_short_term_goal is None:
            return GoalState.HAS_LONG_TERM
        if st.locked_in_task:
            return GoalState.LOCKED_IN
        return GoalState.HAS_SHORT_TERM

    @property
    def current_long_term_goal(self) -> str | None:
        return self._state.current_long_term_goal

    @property
    def current_short_term_goal(self) -> str | None:
        return self._state.current_short_term_goal

    def add_long_term_goal(self, goal: str) -> None:
        """Set ``goal`` as current if there is none, otherwise queue it."""
        goal = goal.strip()
        if not goal:
            raise ValueError("Goal must not be empty")
        if self._state.current_long_term_goal is None:
            self._state.current_long_term_goal = goal
            logger.info(f"Long-term goal set: {goal}")
        else:
            self._state.long_term_goal_queue.append(goal)
            logger.info(f"Long-term goal queued: {goal}")

    def set_short_term_plan(self, substeps: list[str]) -> bool:
        """Install a breakdown of the current long-term goal.

        Returns:
            True if a short-term goal was set, False if ``substeps`` was empty.

        Raises:
            ValueError: If there is no current long-term goal.
        """
        if self._state.current_long_term_goal is None:
            raise ValueError("Cannot plan short-term goals without a current long-term goal")
        if not substeps:
            return False
        self._state.current_short_term_goal = substeps[0]
        self._state.short_term_queue = list(substeps[1:])
        self._state.locked_in_task = False
        logger.info(f"Short-term goal: {substeps[0]} ({len(substeps) - 1} more queued)")
        return True

    def lock(self) -> None:
        """Commit to the current short-term goal."""
        if self._state.current_short_term_goal is None:
            raise ValueError("Cannot lock in without a current short-term goal")
        self._state.locked_in_task = True
        logger.info(f"Locked in: {self._state.current_short_term_goal}")

    def complete_short_term(self) -> bool:
        """Finish the current short-term goal and move to the next one.

        Returns:
            True if another short-term goal became current. False if the
            substeps ran out and the long-term goal was advanced.
        """
        finished = self._state.current_short_term_goal
        self._state.locked_in_task = False
        queue = self._state.short_term_queue
        if queue:
            self._state.current_short_term_goal = queue[0]
            self._state.short_term_queue = queue[1:]
            logger.info(f"Completed '{finished}', next: {queue[0]}")
            return True
        logger.info(f"Completed '{finished}', no substeps left")
        self.advance_long_term_goal()
        return False

    def advance_long_term_goal(self) -> None:
        """Replace the current long-term goal with the next queued one, if any."""
        queue = self._state.long_term_goal_queue
        if not queue:
            self._state.current_long_term_goal = None
            logger.info("Long-term goal queue exhausted")
            return
        next_goal = queue[0]
        self._state.long_term_goal_queue = queue[1:]
        # Clearing first resets the short-term goal, queue and lock
        self._state.current_long_term_goal = None
        self._state.current_long_term_goal = next_goal
        logger.info(f"Advanced to long-term goal: {next_goal}")
