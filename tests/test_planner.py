"""Tests for the goal decomposition engine."""

from __future__ import annotations

import pytest
from conftest import PICKAXE_GOAL, PICKAXE_STEPS, PlannerReasoner, ScriptedReasoner, pickaxe_reasoner

from craftmind.core.metrics import MetricsCollector
from craftmind.core.prompts.planner_prompts import build_breakdown_prompt, build_func_call_prompt
from craftmind.interfaces.reasoner import ReasonerError
from craftmind.models.plan import PlanMode, StepNode
from craftmind.models.world import MobSighting
from craftmind.state.shared import SharedAgentState
from craftmind.strategy.planner import GoalTreeBuilder, build_context, build_goal_tree


def _nested_reasoner() -> PlannerReasoner:
    """Root -> [A, B]; A -> [A1, A2]; B, A1 and A2 resolve to calls."""
    return PlannerReasoner(
        breakdowns={"Root": ["A", "B"], "A": ["A1", "A2"]},
        calls={"B": "mine(stone, 3)", "A1": "mine(wood, 2)", "A2": "craft(planks, 4)"},
    )


def _assert_tree_invariants(nodes: list[StepNode]) -> None:
    seen: dict[str, StepNode] = {}
    numbers = [n.step_number for n in nodes]
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == len(numbers)
    assert nodes[0].is_root and nodes[0].level == 0 and nodes[0].step_number == 0

    for node in nodes:
        if node.parent_id is not None:
            assert node.parent_id in seen, "parent must precede child"
            parent = seen[node.parent_id]
            assert not parent.is_leaf, "leaves never expand"
            assert node.level == parent.level + 1
            for item, count in parent.projected_inventory.items():
                assert node.projected_inventory.get(item, 0) >= count
        seen[node.id] = node


class TestBuildContext:
    """Context string for breakdown prompts."""

    def _nodes(self) -> list[StepNode]:
        root = StepNode(step="Root", step_number=0)
        a = StepNode(parent_id=root.id, step="A", level=1, step_number=1)
        b = StepNode(parent_id=root.id, step="B", level=1, step_number=2)
        a1 = StepNode(parent_id=a.id, step="A1", level=2, step_number=3)
        a2 = StepNode(parent_id=a.id, step="A2", level=2, step_number=4)
        return [root, a, b, a1, a2]

    def test_groups_earlier_steps_under_parents(self) -> None:
        nodes = self._nodes()
        assert build_context(nodes, nodes[4]) == "Root : (A, B) ; A : (A1) ; "

    def test_excludes_deeper_and_later_steps(self) -> None:
        nodes = self._nodes()
        assert build_context(nodes, nodes[2]) == "Root : (A) ; "

    def test_root_has_no_context(self) -> None:
        nodes = self._nodes()
        assert build_context(nodes, nodes[0]) == ""


class TestPrompts:
    def test_breakdown_prompt_includes_inventory_and_context(self) -> None:
        prompt = build_breakdown_prompt("craft sticks(2)", "Root : (A) ; ", {"oak_planks": 4})
        assert "oak_planks(4)" in prompt
        assert "Root : (A) ;" in prompt
        assert prompt.endswith('Here is the step for you to break down:\n"craft sticks(2)"\n')

    def test_breakdown_prompt_includes_environment(self) -> None:
        state = SharedAgentState()
        state.visible_mobs = [MobSighting(name="zombie", distance=5)]
        prompt = build_breakdown_prompt("Get wood(5)", state=state)
        assert "Visible mobs include: zombie." in prompt

    def test_func_call_prompt_ends_with_step(self) -> None:
        assert build_func_call_prompt("Get wood(5)").endswith("This is the step: Get wood(5)")


class TestGoalTreeBuilder:
    """Incremental tree construction."""

    @pytest.mark.asyncio
    async def test_wooden_pickaxe_tree(self) -> None:
        nodes = await GoalTreeBuilder(pickaxe_reasoner()).build(PICKAXE_GOAL, PlanMode.DFS)

        _assert_tree_invariants(nodes)
        assert len(nodes) == 9
        root = nodes[0]
        children = [n for n in nodes if n.parent_id == root.id]
        assert [c.step for c in children] == PICKAXE_STEPS
        leaves = [n for n in nodes if n.is_leaf]
        assert [leaf.func_call for leaf in leaves] == [
            "mine(wood,5)",
            "craft(wooden_planks,4)",
            "craft(sticks,2)",
            "craft(wooden_pickaxe,1)",
        ]
        mine_leaf = leaves[0]
        assert mine_leaf.step == "Get wood(5)"
        assert mine_leaf.level == 2
        assert mine_leaf.projected_inventory == {"wood": 5}

    @pytest.mark.asyncio
    async def test_bfs_expands_level_by_level(self) -> None:
        nodes = await GoalTreeBuilder(_nested_reasoner()).build("Root", PlanMode.BFS)

        _assert_tree_invariants(nodes)
        order = [(n.step, n.func_call) for n in nodes]
        assert order == [
            ("Root", None),
            ("A", None),
            ("B", None),
            ("A1", None),
            ("A2", None),
            ("B", "mine(stone,3)"),
            ("A1", "mine(wood,2)"),
            ("A2", "craft(planks,4)"),
        ]

    @pytest.mark.asyncio
    async def test_dfs_finishes_first_branch_first(self) -> None:
        nodes = await GoalTreeBuilder(_nested_reasoner()).build("Root", "dfs")

        _assert_tree_invariants(nodes)
        order = [(n.step, n.func_call) for n in nodes]
        assert order == [
            ("Root", None),
            ("A", None),
            ("B", None),
            ("A1", None),
            ("A2", None),
            ("A1", "mine(wood,2)"),
            ("A2", "craft(planks,4)"),
            ("B", "mine(stone,3)"),
        ]

    @pytest.mark.asyncio
    async def test_root_is_never_checked_as_a_call(self) -> None:
        reasoner = _nested_reasoner()
        await GoalTreeBuilder(reasoner).build("Root")
        assert "Root" not in reasoner.call_checks
        assert reasoner.breakdown_steps == ["Root", "A"]

    @pytest.mark.asyncio
    async def test_inventory_propagates_to_children(self) -> None:
        reasoner = PlannerReasoner(
            breakdowns={"Goal": ["Get wood(2)"]},
            calls={"Get wood(2)": "mine(wood, 2)"},
        )
        nodes = await GoalTreeBuilder(reasoner).build("Goal")
        assert nodes[-1].projected_inventory == {"wood": 2}
        assert all(n.projected_inventory == {} for n in nodes[:-1])

    @pytest.mark.asyncio
    async def test_unbreakable_step_stays_a_childless_node(self) -> None:
        reasoner = PlannerReasoner(breakdowns={"Goal": ["dance"]})
        nodes = await GoalTreeBuilder(reasoner).build("Goal")
        assert [n.step for n in nodes] == ["Goal", "dance"]
        assert not nodes[1].is_leaf

    @pytest.mark.asyncio
    async def test_progress_sees_every_append(self) -> None:
        snapshots: list[int] = []

        async def on_progress(nodes: list[StepNode]) -> None:
            snapshots.append(len(nodes))

        await GoalTreeBuilder(pickaxe_reasoner()).build(PICKAXE_GOAL, on_progress=on_progress)
        assert snapshots == [5, 6, 7, 8, 9]

    @pytest.mark.asyncio
    async def test_sync_progress_callback(self) -> None:
        snapshots: list[int] = []
        await GoalTreeBuilder(pickaxe_reasoner()).build(
            PICKAXE_GOAL, on_progress=lambda nodes: snapshots.append(len(nodes))
        )
        assert snapshots[-1] == 9

    @pytest.mark.asyncio
    async def test_reasoner_error_propagates(self) -> None:
        reasoner = ScriptedReasoner(complete=lambda prompt: ReasonerError("service down"))
        with pytest.raises(ReasonerError):
            await GoalTreeBuilder(reasoner).build("Goal")

    @pytest.mark.asyncio
    async def test_metrics_recorded(self) -> None:
        metrics = MetricsCollector()
        nodes = await build_goal_tree(PICKAXE_GOAL, reasoner=pickaxe_reasoner(), metrics=metrics)
        snapshot = metrics.get_metrics()
        assert snapshot.plans_built == 1
        assert snapshot.plan_nodes_total == len(nodes)
        # one breakdown for the root plus one call check per child
        assert snapshot.reasoner_calls_by_component == {"planner": 5}

    @pytest.mark.asyncio
    async def test_breakdown_uses_context_of_earlier_steps(self) -> None:
        reasoner = PlannerReasoner(
            breakdowns={"Root": ["A", "B"], "B": ["B1"]},
            calls={"A": "mine(wood, 1)", "B1": "craft(planks, 4)"},
        )
        await GoalTreeBuilder(reasoner).build("Root", PlanMode.BFS)
        breakdown_prompt = next(p for p in reasoner.prompts if p.endswith('break down:\n"B"\n'))
        assert "already done the following things" in breakdown_prompt
        assert "Root : (A) ;" in breakdown_prompt
