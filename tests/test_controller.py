"""Tests for the cognitive controller and its periodic loops."""

from __future__ import annotations

import asyncio

import pytest
from conftest import PlannerReasoner, ScriptedReasoner, StubPerception

from craftmind.core.controller import (
    CognitiveController,
    ControllerConfig,
    ControllerState,
    PeriodicTask,
)
from craftmind.core.metrics import MetricsCollector
from craftmind.interfaces.reasoner import ReasonerError
from craftmind.memory.store import Memory
from craftmind.models.log import LogRole
from craftmind.models.world import Coordinate, MobSighting, Vitals
from craftmind.runtime.mailbox import MessageBus, MessageKind
from craftmind.social.ledger import Social
from craftmind.state.shared import SharedAgentState
from craftmind.strategy.goals import GoalState
from craftmind.strategy.planner import GoalTreeBuilder

WOOD_PLAN = {"Acquire wooden pickaxe (1)": ["Get wood(5)", "craft wooden planks(4)"]}


def _controller(
    perception: StubPerception,
    breakdowns: dict[str, list[str]] | None = None,
    **kwargs: object,
) -> tuple[CognitiveController, SharedAgentState]:
    state = SharedAgentState("steve")
    planner = GoalTreeBuilder(PlannerReasoner(breakdowns if breakdowns is not None else WOOD_PLAN))
    return CognitiveController(state, perception, planner, **kwargs), state


def _system_messages(state: SharedAgentState) -> list[str]:
    return [e.content for e in state.event_log if e.role == LogRole.SYSTEM]


class TestPeriodicTask:
    """Tick scheduling and the overlap guard."""

    def test_interval_must_be_positive(self) -> None:
        async def body() -> None:
            return None

        with pytest.raises(ValueError):
            PeriodicTask("fast", 0, body, MetricsCollector())

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self) -> None:
        release = asyncio.Event()
        runs = 0

        async def body() -> None:
            nonlocal runs
            runs += 1
            await release.wait()

        metrics = MetricsCollector()
        task = PeriodicTask("slow", 1.0, body, metrics)

        first = task.fire()
        await asyncio.sleep(0)
        assert first is not None
        assert task.fire() is None
        assert metrics.get_metrics().skipped_ticks == 1

        release.set()
        await task.wait_idle()
        assert runs == 1
        assert task.busy is False
        assert task.fire() is not None
        await task.wait_idle()
        assert runs == 2

    @pytest.mark.asyncio
    async def test_overlap_allowed(self) -> None:
        release = asyncio.Event()
        running = 0
        peak = 0

        async def body() -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await release.wait()
            running -= 1

        task = PeriodicTask("slow", 1.0, body, MetricsCollector(), allow_overlap=True)
        task.fire()
        task.fire()
        await asyncio.sleep(0)
        release.set()
        await task.wait_idle()
        assert peak == 2

    @pytest.mark.asyncio
    async def test_body_exception_is_counted_and_contained(self) -> None:
        calls = 0

        async def body() -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")

        metrics = MetricsCollector()
        task = PeriodicTask("fast", 1.0, body, metrics)

        assert await task.run_once() is False
        assert await task.run_once() is True
        snapshot = metrics.get_metrics()
        assert snapshot.fast_ticks == 2
        assert snapshot.tick_errors == 1
        assert snapshot.errors_recovered == 1
        assert snapshot.errors_by_type == {"RuntimeError": 1}

    @pytest.mark.asyncio
    async def test_timer_fires_until_stopped(self) -> None:
        ticks = 0

        async def body() -> None:
            nonlocal ticks
            ticks += 1

        task = PeriodicTask("fast", 0.01, body, MetricsCollector())
        task.start()
        assert task.is_scheduled
        await asyncio.sleep(0.1)
        task.stop()
        await task.wait_idle()
        seen = ticks
        assert seen >= 2
        await asyncio.sleep(0.05)
        assert ticks == seen
        assert not task.is_scheduled


class TestFastLoop:
    """Threat detection."""

    @pytest.mark.asyncio
    async def test_hostile_within_distance_requests_defense_once(self, perception: StubPerception) -> None:
        controller, state = _controller(perception)
        perception.mobs = [MobSighting(name="cow", distance=2), MobSighting(name="Zombie", distance=6)]

        await controller.run_once_fast()
        await controller.run_once_fast()

        assert state.defensive_response_requested is True
        assert state.pending_actions == ["defend against Zombie"]
        assert _system_messages(state) == [
            "Hostile Zombie at 6.0 blocks; defensive response requested."
        ]
        assert len(state.visible_mobs) == 2

    @pytest.mark.asyncio
    async def test_flag_clears_when_hostiles_leave(self, perception: StubPerception) -> None:
        controller, state = _controller(perception)
        perception.mobs = [MobSighting(name="skeleton", distance=3)]
        await controller.run_once_fast()

        perception.mobs = []
        await controller.run_once_fast()
        assert state.defensive_response_requested is False

        perception.mobs = [MobSighting(name="skeleton", distance=3)]
        await controller.run_once_fast()
        assert state.pending_actions == ["defend against skeleton", "defend against skeleton"]

    @pytest.mark.asyncio
    async def test_distant_or_peaceful_mobs_are_ignored(self, perception: StubPerception) -> None:
        controller, state = _controller(perception)
        perception.mobs = [MobSighting(name="zombie", distance=15), MobSighting(name="cow", distance=1)]
        await controller.run_once_fast()
        assert state.defensive_response_requested is False
        assert state.pending_actions == []

    @pytest.mark.asyncio
    async def test_configurable_hostiles(self, perception: StubPerception) -> None:
        config = ControllerConfig(hostile_mobs=frozenset({"witch"}), threat_distance=20)
        controller, state = _controller(perception, config=config)
        perception.mobs = [MobSighting(name="witch", distance=18)]
        await controller.run_once_fast()
        assert state.pending_actions == ["defend against witch"]


class TestSlowLoop:
    """World refresh, mailbox and goal stepping."""

    @pytest.mark.asyncio
    async def test_refreshes_world(self, perception: StubPerception) -> None:
        controller, state = _controller(perception)
        perception.blocks = {"oak_log": Coordinate(x=3, y=64, z=1)}
        perception.inventory = ["stick:2"]
        perception.players = ["alex"]
        perception.vitals = Vitals(health=9, hunger=12)

        assert await controller.run_once_slow() is True

        assert state.visible_blocks == {"oak_log": Coordinate(x=3, y=64, z=1)}
        assert state.inventory == ["stick:2"]
        assert state.players_nearby == ["alex"]
        assert state.health == 9
        assert state.hunger == 12

    @pytest.mark.asyncio
    async def test_goal_state_machine_one_transition_per_tick(self, perception: StubPerception) -> None:
        controller, state = _controller(perception)
        controller.goals.add_long_term_goal("Acquire wooden pickaxe (1)")

        await controller.run_once_slow()
        assert controller.goals.goal_state == GoalState.HAS_SHORT_TERM
        assert state.current_short_term_goal == "Get wood(5)"
        assert state.short_term_queue == ["craft wooden planks(4)"]

        await controller.run_once_slow()
        assert controller.goals.goal_state == GoalState.LOCKED_IN

        await controller.run_once_slow()
        assert controller.goals.goal_state == GoalState.LOCKED_IN

        perception.inventory = ["oak_log:5"]
        await controller.run_once_slow()
        assert state.current_short_term_goal == "craft wooden planks(4)"
        assert controller.goals.goal_state == GoalState.HAS_SHORT_TERM

        assert _system_messages(state) == [
            "Breaking down goal: Acquire wooden pickaxe (1) => Get wood(5)",
            "Locking in to subtask: Get wood(5)",
            "Finished locked-in task: Get wood(5)",
        ]
        assert controller.metrics.get_metrics().current_goal == "craft wooden planks(4)"

    @pytest.mark.asyncio
    async def test_unbreakable_goal_advances_queue(self, perception: StubPerception) -> None:
        controller, state = _controller(perception, breakdowns={})
        controller.goals.add_long_term_goal("Do a backflip")
        controller.goals.add_long_term_goal("Build a house")

        await controller.run_once_slow()

        assert state.current_long_term_goal == "Build a house"
        assert "Could not break down goal: Do a backflip" in _system_messages(state)

    @pytest.mark.asyncio
    async def test_custom_predicates(self, perception: StubPerception) -> None:
        controller, state = _controller(
            perception,
            breakdowns={"Explore": ["walk north"]},
            commit_predicate=lambda goal, st: True,
            completion_predicate=lambda goal, st: True,
        )
        controller.goals.add_long_term_goal("Explore")
        for _ in range(3):
            await controller.run_once_slow()
        assert controller.goals.goal_state == GoalState.NO_GOAL

    @pytest.mark.asyncio
    async def test_perception_failure_is_contained(self, perception: StubPerception) -> None:
        metrics = MetricsCollector()
        controller, _ = _controller(perception, metrics=metrics)
        perception.block_error = RuntimeError("chunk not loaded")

        assert await controller.run_once_slow() is False
        perception.block_error = None
        assert await controller.run_once_slow() is True

        snapshot = metrics.get_metrics()
        assert snapshot.slow_ticks == 2
        assert snapshot.tick_errors == 1


class TestMailbox:
    """Messages from other agents are handled on the slow tick."""

    @pytest.mark.asyncio
    async def test_goal_chat_and_location_messages(self, perception: StubPerception) -> None:
        bus = MessageBus()
        state = SharedAgentState("builder")
        memory = Memory(state)
        controller = CognitiveController(
            state,
            perception,
            GoalTreeBuilder(PlannerReasoner(WOOD_PLAN)),
            social=Social(state),
            memory=memory,
            mailbox=bus.register("builder"),
        )
        bus.register("miner")
        bus.send("miner", "builder", MessageKind.GOAL, {"goal": "Acquire wooden pickaxe (1)"})
        bus.send("miner", "builder", MessageKind.CHAT, {"text": "thanks friend"})
        bus.send("miner", "builder", MessageKind.LOCATION, {"name": "mine", "coords": {"x": 1, "y": 12, "z": 4}})

        await controller.run_once_slow()

        assert state.current_long_term_goal == "Acquire wooden pickaxe (1)"
        assert state.current_short_term_goal == "Get wood(5)"
        assert state.feelings_to_others["miner"].sentiment == 1
        assert memory.get_location_memory("mine") == Coordinate(x=1, y=12, z=4)

    @pytest.mark.asyncio
    async def test_malformed_message_is_dropped(self, perception: StubPerception) -> None:
        bus = MessageBus()
        metrics = MetricsCollector()
        controller, state = _controller(perception, mailbox=bus.register("steve"), metrics=metrics)
        bus.send("alex", "steve", MessageKind.GOAL, {})
        bus.send("alex", "steve", MessageKind.LOCATION, {"name": "x", "coords": {"x": "far"}})
        bus.send("alex", "steve", MessageKind.CUSTOM, {"note": "hello"})

        assert await controller.run_once_slow() is True

        assert metrics.get_metrics().errors_by_type == {"KeyError": 1, "ValidationError": 1}
        assert state.event_log[-1].metadata == {"sender": "alex", "kind": "custom"}

    @pytest.mark.asyncio
    async def test_failed_chat_does_not_lose_later_messages(self, perception: StubPerception) -> None:
        """A reasoner failure on one chat still lets later messages and goal stepping run."""
        bus = MessageBus()
        metrics = MetricsCollector()
        state = SharedAgentState("steve")
        failing = ScriptedReasoner(complete=lambda prompt: ReasonerError("LLM requests are disabled."))
        controller = CognitiveController(
            state,
            perception,
            GoalTreeBuilder(PlannerReasoner(WOOD_PLAN)),
            social=Social(state, reasoner=failing),
            mailbox=bus.register("steve"),
            metrics=metrics,
        )
        bus.send("alex", "steve", MessageKind.CHAT, {"text": "hello there"})
        bus.send("alex", "steve", MessageKind.GOAL, {"goal": "Acquire wooden pickaxe (1)"})

        assert await controller.run_once_slow() is True

        assert state.current_long_term_goal == "Acquire wooden pickaxe (1)"
        assert state.current_short_term_goal == "Get wood(5)"
        assert metrics.get_metrics().errors_by_type == {"ReasonerError": 1}
        assert len(failing.prompts) == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, perception: StubPerception) -> None:
        config = ControllerConfig(fast_loop_seconds=0.01, slow_loop_seconds=0.02)
        controller, _ = _controller(perception, config=config)

        assert controller.state == ControllerState.STOPPED
        controller.start()
        assert controller.state == ControllerState.RUNNING
        await asyncio.sleep(0.1)
        controller.stop()
        await controller.wait_idle()

        assert controller.state == ControllerState.STOPPED
        snapshot = controller.metrics.get_metrics()
        assert snapshot.fast_ticks >= 1
        assert snapshot.slow_ticks >= 1
        assert snapshot.started_at is not None

    def test_start_requires_running_loop(self, perception: StubPerception) -> None:
        controller, _ = _controller(perception)
        with pytest.raises(RuntimeError):
            controller.start()
