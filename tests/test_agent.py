"""Tests for per-agent assembly."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import PlannerReasoner, RecordingActions, ScriptedReasoner, StubPerception

from craftmind.agent import AgentContext, build_reasoner
from craftmind.config.loader import Config, LLMConfig
from craftmind.interfaces.actions import PathfindTimeout
from craftmind.llm.client import LLMReasoner
from craftmind.models.log import LogRole
from craftmind.models.messages import ReasonerReply, ToolInvocation
from craftmind.models.plan import PlanMode
from craftmind.runtime.mailbox import MessageBus
from craftmind.strategy.recipes import RecipeBook

DEEP_BREAKDOWNS = {"Root": ["A", "B"], "A": ["A1"], "B": ["B1"], "A1": ["A1x"]}


class TestBuild:
    """Which components exist depends on the collaborators supplied."""

    def test_without_collaborators(self) -> None:
        ctx = AgentContext.build(Config(), ScriptedReasoner())

        assert ctx.name == "craftmind"
        assert ctx.state.agent_name == "craftmind"
        assert ctx.dispatcher is None
        assert ctx.controller is None
        assert ctx.mailbox is None

    def test_with_collaborators(self, actions: RecordingActions, perception: StubPerception) -> None:
        bus = MessageBus()
        ctx = AgentContext.build(
            Config(),
            ScriptedReasoner(),
            name="miner",
            actions=actions,
            perception=perception,
            bus=bus,
        )

        assert ctx.dispatcher is not None
        assert ctx.controller is not None
        assert ctx.mailbox is bus.register("miner")
        assert bus.agents == ["miner"]

    def test_config_reaches_components(self) -> None:
        config = Config.model_validate({"memory": {"short_term_capacity": 3}})
        ctx = AgentContext.build(config, ScriptedReasoner())
        assert ctx.memory.capacity == 3

    def test_agents_do_not_share_state(self) -> None:
        first = AgentContext.build(Config(), ScriptedReasoner(), name="miner")
        second = AgentContext.build(Config(), ScriptedReasoner(), name="builder")
        first.state.log_message(LogRole.SYSTEM, "only miner")
        assert second.state.event_log == ()
        assert first.metrics is not second.metrics

    def test_build_reasoner_applies_settings(self) -> None:
        reasoner = build_reasoner(LLMConfig(provider="anthropic", max_retries=5, enabled=False))

        assert isinstance(reasoner, LLMReasoner)
        assert reasoner.config.provider == "anthropic"
        assert reasoner.config.max_retries == 5
        assert reasoner.enabled is False

    def test_loads_configured_recipe_file(self, tmp_path: Path) -> None:
        recipe_file = tmp_path / "recipes.json"
        recipe_file.write_text(
            json.dumps([{"result": {"name": "planks", "count": 4}, "ingredients": ["log"]}])
        )
        config = Config.model_validate({"dispatch": {"recipes_file": str(recipe_file)}})

        ctx = AgentContext.build(config, ScriptedReasoner())

        assert len(ctx.recipes) == 1
        assert "planks" in ctx.recipes

    def test_supplied_recipes_win_over_file(self, tmp_path: Path) -> None:
        config = Config.model_validate({"dispatch": {"recipes_file": str(tmp_path / "missing.json")}})
        book = RecipeBook()

        ctx = AgentContext.build(config, ScriptedReasoner(), recipes=book)

        assert ctx.recipes is book

    def test_missing_recipe_file_fails(self, tmp_path: Path) -> None:
        config = Config.model_validate({"dispatch": {"recipes_file": str(tmp_path / "missing.json")}})
        with pytest.raises(FileNotFoundError):
            AgentContext.build(config, ScriptedReasoner())


class TestPlan:
    @pytest.mark.asyncio
    async def test_uses_configured_default_mode(self) -> None:
        reasoner = PlannerReasoner(DEEP_BREAKDOWNS)
        config = Config.model_validate({"planner": {"default_mode": "dfs"}})
        ctx = AgentContext.build(config, reasoner)

        await ctx.plan("Root")

        assert reasoner.breakdown_steps == ["Root", "A", "A1", "A1x", "B", "B1"]
        assert ctx.metrics.get_metrics().plans_built == 1

    @pytest.mark.asyncio
    async def test_explicit_mode_wins(self) -> None:
        reasoner = PlannerReasoner(DEEP_BREAKDOWNS)
        config = Config.model_validate({"planner": {"default_mode": "dfs"}})
        ctx = AgentContext.build(config, reasoner)

        nodes = await ctx.plan("Root", PlanMode.BFS)

        assert reasoner.breakdown_steps == ["Root", "A", "B", "A1", "B1", "A1x"]
        assert [node.step for node in nodes] == ["Root", "A", "B", "A1", "B1", "A1x"]


class TestRunInstruction:
    """Dispatch followed by memory consolidation."""

    @pytest.mark.asyncio
    async def test_requires_actions(self) -> None:
        ctx = AgentContext.build(Config(), ScriptedReasoner())
        with pytest.raises(RuntimeError, match="no action collaborator"):
            await ctx.run_instruction("Get wood")

    @pytest.mark.asyncio
    async def test_consolidates_final_response(self, actions: RecordingActions) -> None:
        ctx = AgentContext.build(Config(), ScriptedReasoner(), actions=actions)

        response = await ctx.run_instruction("Say hello")

        assert response == "ok"
        keys = list(ctx.state.short_term_memory)
        assert len(keys) == 1
        assert keys[0].startswith("memory_")
        assert ctx.state.event_log[-1].role == LogRole.MEMORY

    @pytest.mark.asyncio
    async def test_consolidation_can_be_skipped(self, actions: RecordingActions) -> None:
        ctx = AgentContext.build(Config(), ScriptedReasoner(), actions=actions)

        await ctx.run_instruction("Say hello", consolidate=False)

        assert len(ctx.state.short_term_memory) == 0


class TestToggle:
    def test_stub_reasoner_has_no_switch(self) -> None:
        assert AgentContext.build(Config(), ScriptedReasoner()).toggle_llm() is None

    def test_llm_reasoner_toggles(self) -> None:
        ctx = AgentContext.build(Config(), LLMReasoner(client=object()))
        assert ctx.toggle_llm() is False
        assert ctx.toggle_llm() is True

    def test_start_and_stop_without_controller(self) -> None:
        ctx = AgentContext.build(Config(), ScriptedReasoner())
        ctx.start()
        ctx.stop()


@pytest.mark.asyncio
async def test_pathfinding_timeouts_are_retried() -> None:
    actions = RecordingActions({"mine": [PathfindTimeout("stuck")]})
    reasoner = ScriptedReasoner(
        replies=[
            ReasonerReply(
                invocations=[
                    ToolInvocation(name="mine", arguments='{"goalBlock": "stone", "desiredCount": 1}')
                ]
            ),
            ReasonerReply(text="done"),
        ]
    )
    config = Config.model_validate({"actions": {"pathfind_backoff_seconds": 0}})
    ctx = AgentContext.build(config, reasoner, actions=actions)

    assert await ctx.run_instruction("Get stone", consolidate=False) == "done"
    assert actions.calls == [("mine", "stone", 1), ("mine", "stone", 1)]
