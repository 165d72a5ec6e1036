"""Metrics collection for the cognitive controller and its components.

This module provides metrics tracking for:
- Fast and slow loop ticks, including skipped overlapping ticks
- Tool-dispatch rounds and action outcomes
- Reasoner calls from the planner and the dispatch loop
- Error tracking

Example:
    >>> from craftmind.core.metrics import MetricsCollector
    >>>
    >>> metrics = MetricsCollector()
    >>> metrics.record_tick("fast", 3.5)
    >>> metrics.record_action(success=True, duration_ms=25.0)
    >>>
    >>> stats = metrics.get_metrics()
    >>> print(f"Fast ticks: {stats.fast_ticks}")
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ControllerMetrics(BaseModel):
    """Snapshot of agent metrics at a point in time.

    It is immutable and can be safely shared with the observer thread.

    Attributes:
        fast_ticks: Completed fast loop ticks.
        slow_ticks: Completed slow loop ticks.
        skipped_ticks: Ticks skipped because the previous body was still running.
        tick_errors: Loop bodies that raised.
        dispatch_calls: Completed tool-dispatch invocations.
        dispatch_rounds: Total reasoner rounds across all dispatch calls.
        plans_built: Goal trees built by the planner.
        plan_nodes_total: Nodes produced across all goal trees.
    """

    # Loops
    fast_ticks: int = Field(default=0, ge=0)
    slow_ticks: int = Field(default=0, ge=0)
    skipped_ticks: int = Field(default=0, ge=0)
    tick_errors: int = Field(default=0, ge=0)
    avg_fast_tick_ms: float = Field(default=0.0, ge=0.0)
    avg_slow_tick_ms: float = Field(default=0.0, ge=0.0)

    # Dispatch and planning
    dispatch_calls: int = Field(default=0, ge=0)
    dispatch_rounds: int = Field(default=0, ge=0)
    plans_built: int = Field(default=0, ge=0)
    plan_nodes_total: int = Field(default=0, ge=0)
    reasoner_calls_total: int = Field(default=0, ge=0)
    reasoner_calls_by_component: dict[str, int] = Field(default_factory=dict)

    # Actions
    actions_total: int = Field(default=0, ge=0)
    actions_successful: int = Field(default=0, ge=0)
    actions_failed: int = Field(default=0, ge=0)
    avg_action_time_ms: float = Field(default=0.0, ge=0.0)

    # Errors
    errors_total: int = Field(default=0, ge=0)
    errors_recovered: int = Field(default=0, ge=0)
    errors_by_type: dict[str, int] = Field(default_factory=dict)

    current_goal: str = Field(default="")

    # Uptime
    started_at: datetime | None = Field(default=None)
    uptime_seconds: float = Field(default=0.0, ge=0.0)

    model_config = {"frozen": True}

    @property
    def action_success_rate(self) -> float:
        """Calculate action success rate (0.0 to 1.0)."""
        if self.actions_total == 0:
            return 0.0
        return self.actions_successful / self.actions_total

    @property
    def avg_rounds_per_dispatch(self) -> float:
        if self.dispatch_calls == 0:
            return 0.0
        return self.dispatch_rounds / self.dispatch_calls


@dataclass
class _TimingStats:
    """Internal helper for tracking timing statistics."""

    total_ms: float = 0.0
    count: int = 0

    def record(self, duration_ms: float) -> None:
        self.total_ms += duration_ms
        self.count += 1

    @property
    def average_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count


class MetricsCollector:
    """Collects metrics from the controller, planner and dispatch loop.

    This class is thread-safe: the agent writes from its event loop while
    the observer server may read from another thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fast_timing = _TimingStats()
        self._slow_timing = _TimingStats()
        self._action_timing = _TimingStats()

        self._skipped_ticks = 0
        self._tick_errors = 0

        self._dispatch_calls = 0
        self._dispatch_rounds = 0
        self._plans_built = 0
        self._plan_nodes_total = 0
        self._reasoner_calls: dict[str, int] = {}

        self._actions_successful = 0
        self._actions_failed = 0

        self._errors_recovered = 0
        self._errors_fatal = 0
        self._errors_by_type: dict[str, int] = {}

        self._current_goal = ""
        self._started_at: datetime | None = None

        logger.debug("MetricsCollector initialized")

    def start(self) -> None:
        """Mark the start of metrics collection."""
        with self._lock:
            self._started_at = datetime.now()

    def reset(self) -> None:
        """Reset all metrics to initial state."""
        with self._lock:
            self._fast_timing = _TimingStats()
            self._slow_timing = _TimingStats()
            self._action_timing = _TimingStats()
            self._skipped_ticks = 0
            self._tick_errors = 0
            self._dispatch_calls = 0
            self._dispatch_rounds = 0
            self._plans_built = 0
            self._plan_nodes_total = 0
            self._reasoner_calls.clear()
            self._actions_successful = 0
            self._actions_failed = 0
            self._errors_recovered = 0
            self._errors_fatal = 0
            self._errors_by_type.clear()
            self._current_goal = ""
            self._started_at = None
            logger.debug("Metrics reset")

    def record_tick(self, loop: str, duration_ms: float, failed: bool = False) -> None:
        """Record a completed loop tick.

        Args:
            loop: "fast" or "slow".
            duration_ms: Duration of the tick body in milliseconds.
            failed: Whether the body raised.
        """
        with self._lock:
            if loop == "fast":
                self._fast_timing.record(duration_ms)
            else:
                self._slow_timing.record(duration_ms)
            if failed:
                self._tick_errors += 1

    def record_skipped_tick(self, loop: str) -> None:
        """Record a tick skipped because the previous body was still running."""
        with self._lock:
            self._skipped_ticks += 1
        logger.debug(f"Skipped overlapping {loop} tick")

    def record_dispatch(self, rounds: int) -> None:
        with self._lock:
            self._dispatch_calls += 1
            self._dispatch_rounds += rounds

    def record_plan(self, node_count: int) -> None:
        with self._lock:
            self._plans_built += 1
            self._plan_nodes_total += node_count

    def record_reasoner_call(self, component: str) -> None:
        """Record a reasoner call made by ``component`` (planner, dispatch, memory, social)."""
        with self._lock:
            self._reasoner_calls[component] = self._reasoner_calls.get(component, 0) + 1

    def record_action(self, success: bool, duration_ms: float) -> None:
        """Record a primitive execution.

        Args:
            success: Whether the primitive succeeded.
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self._action_timing.record(duration_ms)
            if success:
                self._actions_successful += 1
            else:
                self._actions_failed += 1

    def record_error(self, error_type: str, recovered: bool) -> None:
        """Record an error.

        Args:
            error_type: Class name of the error.
            recovered: Whether the agent continued after this error.
        """
        with self._lock:
            if recovered:
                self._errors_recovered += 1
            else:
                self._errors_fatal += 1
            self._errors_by_type[error_type] = self._errors_by_type.get(error_type, 0) + 1

    def set_goal(self, goal: str | None) -> None:
        with self._lock:
            self._current_goal = goal or ""

    def get_metrics(self) -> ControllerMetrics:
        """Get a snapshot of all current metrics."""
        with self._lock:
            uptime = 0.0
            if self._started_at is not None:
                uptime = (datetime.now() - self._started_at).total_seconds()

            return ControllerMetrics(
                fast_ticks=self._fast_timing.count,
                slow_ticks=self._slow_timing.count,
                skipped_ticks=self._skipped_ticks,
                tick_errors=self._tick_errors,
                avg_fast_tick_ms=self._fast_timing.average_ms,
                avg_slow_tick_ms=self._slow_timing.average_ms,
                dispatch_calls=self._dispatch_calls,
                dispatch_rounds=self._dispatch_rounds,
                plans_built=self._plans_built,
                plan_nodes_total=self._plan_nodes_total,
                reasoner_calls_total=sum(self._reasoner_calls.values()),
                reasoner_calls_by_component=dict(self._reasoner_calls),
                actions_total=self._actions_successful + self._actions_failed,
                actions_successful=self._actions_successful,
                actions_failed=self._actions_failed,
                avg_action_time_ms=self._action_timing.average_ms,
                errors_total=self._errors_recovered + self._errors_fatal,
                errors_recovered=self._errors_recovered,
                errors_by_type=dict(self._errors_by_type),
                current_goal=self._current_goal,
                started_at=self._started_at,
                uptime_seconds=uptime,
            )
