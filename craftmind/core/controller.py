"""Cognitive controller: the fast and slow periodic loops of one agent.

The controller schedules two independent periodic tasks over a single
:class:`SharedAgentState`:

- fast loop: refreshes nearby mobs and flags a defensive response when a
  hostile mob is within the threat distance
- slow loop: refreshes the wider world, re-evaluates social alignment,
  drains the agent's mailbox and advances the goal state machine

Exceptions raised inside either loop body are logged and counted; the next
tick still fires. By default a tick that fires while the previous body of
the same loop is still running is skipped.

Example:
    >>> controller = CognitiveController(state, perception, planner, metrics=metrics)
    >>> controller.start()          # inside a running event loop
    >>> await controller.run_once_slow()
    >>> controller.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from craftmind.core.metrics import MetricsCollector
from craftmind.interfaces.perception import PerceptionCollaborator
from craftmind.memory.store import Memory
from craftmind.models.log import LogRole
from craftmind.models.world import Coordinate, MobSighting
from craftmind.runtime.mailbox import AgentMailbox, AgentMessage, MessageKind
from craftmind.social.ledger import Social
from craftmind.state.shared import SharedAgentState
from craftmind.strategy.goals import (
    GoalManager,
    GoalPredicate,
    GoalState,
    default_commit_predicate,
    default_completion_predicate,
)
from craftmind.strategy.planner import GoalTreeBuilder

logger = logging.getLogger(__name__)

DEFAULT_HOSTILE_MOBS = frozenset({"zombie", "skeleton", "spider", "creeper"})


class ControllerState(StrEnum):
    """Whether the periodic triggers are armed."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class ControllerConfig:
    """Configuration for the cognitive controller.

    Attributes:
        fast_loop_seconds: Period of the reflex loop.
        slow_loop_seconds: Period of the planning loop.
        threat_distance: Hostile mobs at or within this many blocks trigger
            a defensive response.
        hostile_mobs: Mob names treated as hostile (lowercase).
        allow_overlap: Let a tick start while the previous body of the same
            loop is still running.
    """

    fast_loop_seconds: float = 1.0
    slow_loop_seconds: float = 5.0
    threat_distance: float = 10.0
    hostile_mobs: frozenset[str] = field(default_factory=lambda: DEFAULT_HOSTILE_MOBS)
    allow_overlap: bool = False


class PeriodicTask:
    """Runs an async body every ``interval`` seconds.

    Each tick spawns the body as its own task, so a slow body never delays
    the timer. With ``allow_overlap`` False a tick that finds the previous
    body still in flight is skipped and counted.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        body: Callable[[], Awaitable[None]],
        metrics: MetricsCollector,
        allow_overlap: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"{name} interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self._body = body
        self._metrics = metrics
        self._allow_overlap = allow_overlap
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[bool]] = set()
        self._active = 0

    @property
    def is_scheduled(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def busy(self) -> bool:
        """Whether a body of this loop is currently running."""
        return self._active > 0 or bool(self._in_flight)

    def start(self) -> None:
        """Arm the timer. Must be called from within a running event loop."""
        if self.is_scheduled:
            return
        self._timer = asyncio.get_running_loop().create_task(
            self._tick_forever(), name=f"{self.name}-timer"
        )

    def stop(self) -> None:
        """Disarm the timer. Bodies already running are left to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def fire(self) -> asyncio.Task[bool] | None:
        """Start one body now, unless the overlap guard skips it."""
        if self.busy and not self._allow_overlap:
            self._metrics.record_skipped_tick(self.name)
            return None
        task = asyncio.get_running_loop().create_task(self.run_once(), name=f"{self.name}-tick")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def run_once(self) -> bool:
        """Run the body once, logging and counting any exception.

        Returns:
            True if the body completed without raising.
        """
        self._active += 1
        start = time.perf_counter()
        failed = False
        try:
            await self._body()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            failed = True
            logger.exception(f"Error in {self.name} loop: {e}")
            self._metrics.record_error(type(e).__name__, recovered=True)
        finally:
            self._active -= 1
            self._metrics.record_tick(
                self.name, (time.perf_counter() - start) * 1000, failed=failed
            )
        return not failed

    async def wait_idle(self) -> None:
        """Wait until every in-flight body has finished."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _tick_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.fire()


class CognitiveController:
    """Top-level scheduler of one agent.

    Attributes:
        goals: Goal-stack transitions over the shared state.
        metrics: Metrics collector shared with the rest of the agent.
    """

    def __init__(
        self,
        state: SharedAgentState,
        perception: PerceptionCollaborator,
        planner: GoalTreeBuilder,
        *,
        social: Social | None = None,
        memory: Memory | None = None,
        mailbox: AgentMailbox | None = None,
        metrics: MetricsCollector | None = None,
        config: ControllerConfig | None = None,
        commit_predicate: GoalPredicate = default_commit_predicate,
        completion_predicate: GoalPredicate = default_completion_predicate,
    ) -> None:
        self._state = state
        self._perception = perception
        self._planner = planner
        self._social = social
        self._memory = memory
        self._mailbox = mailbox
        self.metrics = metrics or MetricsCollector()
        self._config = config or ControllerConfig()
        self._commit = commit_predicate
        self._complete = completion_predicate
        self.goals = GoalManager(state)

        self._fast = PeriodicTask(
            "fast",
            self._config.fast_loop_seconds,
            self._fast_tick,
            self.metrics,
            self._config.allow_overlap,
        )
        self._slow = PeriodicTask(
            "slow",
            self._config.slow_loop_seconds,
            self._slow_tick,
            self.metrics,
            self._config.allow_overlap,
        )

        logger.debug(
            f"CognitiveController initialized: fast={self._config.fast_loop_seconds}s, "
            f"slow={self._config.slow_loop_seconds}s"
        )

    @property
    def state(self) -> ControllerState:
        if self._fast.is_scheduled or self._slow.is_scheduled:
            return ControllerState.RUNNING
        return ControllerState.STOPPED

    @property
    def config(self) -> ControllerConfig:
        return self._config

    def start(self) -> None:
        """Arm both periodic loops.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.state == ControllerState.RUNNING:
            return
        self.metrics.start()
        self._fast.start()
        self._slow.start()
        logger.info(f"Controller started for {self._state.agent_name}")

    def stop(self) -> None:
        """Disarm both loops; in-flight bodies run to completion."""
        self._fast.stop()
        self._slow.stop()
        logger.info(f"Controller stopped for {self._state.agent_name}")

    async def wait_idle(self) -> None:
        """Wait for in-flight loop bodies to finish."""
        await asyncio.gather(self._fast.wait_idle(), self._slow.wait_idle())

    async def run_once_fast(self) -> bool:
        """Run one fast tick now. Returns False if the body raised."""
        return await self._fast.run_once()

    async def run_once_slow(self) -> bool:
        """Run one slow tick now. Returns False if the body raised."""
        return await self._slow.run_once()

    def fire_fast(self) -> asyncio.Task[bool] | None:
        return self._fast.fire()

    def fire_slow(self) -> asyncio.Task[bool] | None:
        return self._slow.fire()

    # ------------------------------------------------------------------
    # Fast loop
    # ------------------------------------------------------------------

    async def _fast_tick(self) -> None:
        mobs = await self._perception.scan_mobs()
        self._state.visible_mobs = mobs

        hostiles = [m for m in mobs if self._is_threat(m)]
        if not hostiles:
            self._state.defensive_response_requested = False
            return

        nearest = min(hostiles, key=lambda m: m.distance)
        if self._state.defensive_response_requested:
            return
        self._state.defensive_response_requested = True
        self._state.add_pending_action(f"defend against {nearest.name}")
        self._state.log_message(
            LogRole.SYSTEM,
            f"Hostile {nearest.name} at {nearest.distance:.1f} blocks; defensive response requested.",
            {"mob": nearest.name, "distance": nearest.distance},
        )
        logger.info(f"Threat detected: {nearest.name} at {nearest.distance:.1f}")

    def _is_threat(self, mob: MobSighting) -> bool:
        return (
            mob.name.lower() in self._config.hostile_mobs
            and mob.distance <= self._config.threat_distance
        )

    # ------------------------------------------------------------------
    # Slow loop
    # ------------------------------------------------------------------

    async def _slow_tick(self) -> None:
        await self._refresh_world()

        if self._state.players_nearby and self._social is not None:
            if not self._social.analyze_behavior({"alignment": "aligned"}):
                self._state.log_message(
                    LogRole.SYSTEM, "Not aligned with others, reconsidering approach."
                )

        await self._drain_mailbox()
        await self._step_goals()
        self.metrics.set_goal(self._state.current_short_term_goal or self._state.current_long_term_goal)

    async def _refresh_world(self) -> None:
        self._state.visible_blocks = await self._perception.scan_blocks()
        self._state.inventory = await self._perception.scan_inventory()
        players = await self._perception.scan_players()
        if players is not None:
            self._state.players_nearby = players
        vitals = await self._perception.scan_vitals()
        if vitals is not None:
            self._state.apply_vitals(vitals)

    async def _step_goals(self) -> None:
        """Apply at most one goal state machine transition."""
        goal_state = self.goals.goal_state

        if goal_state == GoalState.LOCKED_IN:
            goal = self._state.current_short_term_goal or ""
            if self._complete(goal, self._state):
                self._state.log_message(LogRole.SYSTEM, f"Finished locked-in task: {goal}")
                self.goals.complete_short_term()
            return

        if goal_state == GoalState.HAS_LONG_TERM:
            goal = self._state.current_long_term_goal or ""
            substeps = await self._planner.breakdown(
                goal,
                inventory=self._state.inventory_counts(),
                ambient_state=self._state,
            )
            if not self.goals.set_short_term_plan(substeps):
                logger.warning(f"Breakdown of '{goal}' produced no substeps; advancing")
                self._state.log_message(LogRole.SYSTEM, f"Could not break down goal: {goal}")
                self.goals.advance_long_term_goal()
                return
            self._state.log_message(
                LogRole.SYSTEM, f"Breaking down goal: {goal} => {substeps[0]}"
            )
            return

        if goal_state == GoalState.HAS_SHORT_TERM:
            goal = self._state.current_short_term_goal or ""
            if self._commit(goal, self._state):
                self.goals.lock()
                self._state.log_message(LogRole.SYSTEM, f"Locking in to subtask: {goal}")

    async def _drain_mailbox(self) -> None:
        if self._mailbox is None:
            return
        # Messages are already off the queue; one failure must not lose the rest.
        for message in self._mailbox.drain():
            try:
                await self._handle_message(message)
            except Exception as e:
                logger.warning(f"Dropping {message.kind} message from {message.sender}: {e}")
                self.metrics.record_error(type(e).__name__, recovered=True)

    async def _handle_message(self, message: AgentMessage) -> None:
        payload = message.payload
        if message.kind == MessageKind.GOAL:
            self.goals.add_long_term_goal(str(payload["goal"]))
        elif message.kind == MessageKind.CHAT:
            text = str(payload["text"])
            if self._social is not None:
                await self._social.listen(text, message.sender)
            else:
                self._state.log_message(LogRole.USER, text, {"sender": message.sender})
        elif message.kind == MessageKind.LOCATION:
            coords = Coordinate.model_validate(payload["coords"])
            name = str(payload["name"])
            if self._memory is not None:
                self._memory.add_location_memory(name, coords)
            else:
                self._state.add_location_memory(name, coords)
        else:
            self._state.log_message(
                LogRole.USER, str(payload), {"sender": message.sender, "kind": str(message.kind)}
            )
