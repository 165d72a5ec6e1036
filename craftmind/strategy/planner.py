"""Goal decomposition engine.

Incrementally expands a goal into a flat list of :class:`StepNode` by
alternating two reasoner questions per frontier node:

1. "Is this step exactly one primitive call?" A match appends a leaf child
   carrying the call and a projected inventory updated by that call.
2. Otherwise "break this step into substeps", given the steps already
   planned and the node's projected inventory.

The frontier is a queue in breadth-first mode and a stack in depth-first
mode. The progress callback sees the full node list after every append.

Example:
    >>> builder = GoalTreeBuilder(reasoner)
    >>> nodes = await builder.build("Acquire wooden pickaxe (1)", mode=PlanMode.DFS)
    >>> [n.func_call for n in nodes if n.is_leaf]
    ['mine(wood,5)', 'craft(wood_planks,4)', 'craft(sticks,2)', 'craft(wooden_pickaxe,1)']
"""

from __future__ import annotations

import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable

from craftmind.core.metrics import MetricsCollector
from craftmind.core.prompts.planner_prompts import build_breakdown_prompt, build_func_call_prompt
from craftmind.interfaces.reasoner import Reasoner
from craftmind.models.plan import PlanMode, StepNode
from craftmind.state.shared import SharedAgentState
from craftmind.strategy.calls import (
    PLANNER_CALL_NAMES,
    FuncCall,
    apply_call_to_inventory,
    parse_func_call,
    split_steps,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[list[StepNode]], Awaitable[None] | None]


def build_context(nodes: list[StepNode], current: StepNode) -> str:
    """Summarize steps planned before ``current`` at its depth or shallower.

    Nodes are grouped under their parent's step text as
    ``"Parent : (child, child) ; "``. The root is never listed as a child.
    """
    by_id = {node.id: node for node in nodes}
    groups: dict[str, list[str]] = {}
    for node in nodes:
        if node.parent_id is None:
            continue
        if node.step_number < current.step_number and node.level <= current.level:
            groups.setdefault(node.parent_id, []).append(node.step)

    parts = []
    for parent_id, steps in groups.items():
        parent = by_id.get(parent_id)
        if parent is None:
            continue
        parts.append(f"{parent.step} : ({', '.join(steps)}) ; ")
    return "".join(parts)


class GoalTreeBuilder:
    """Builds goal trees by consulting a reasoner.

    Attributes:
        allowed_calls: Primitive names a step may resolve to.
    """

    def __init__(
        self,
        reasoner: Reasoner,
        metrics: MetricsCollector | None = None,
        allowed_calls: frozenset[str] = PLANNER_CALL_NAMES,
    ) -> None:
        self._reasoner = reasoner
        self._metrics = metrics
        self.allowed_calls = allowed_calls

    async def check_function_call(self, step: str) -> FuncCall | None:
        """Ask whether ``step`` is exactly one primitive call."""
        answer = await self._ask(build_func_call_prompt(step))
        call = parse_func_call(answer, self.allowed_calls)
        logger.debug(f"Function-call check for '{step}': {answer.strip()!r} -> {call}")
        return call

    async def breakdown(
        self,
        step: str,
        context: str = "",
        inventory: dict[str, int] | None = None,
        ambient_state: SharedAgentState | None = None,
    ) -> list[str]:
        """Ask the reasoner to split ``step`` one level into ordered substeps."""
        prompt = build_breakdown_prompt(step, context, inventory, ambient_state)
        substeps = split_steps(await self._ask(prompt))
        logger.debug(f"Breakdown of '{step}': {substeps}")
        return substeps

    async def build(
        self,
        goal: str,
        mode: PlanMode | str = PlanMode.BFS,
        on_progress: ProgressCallback | None = None,
        ambient_state: SharedAgentState | None = None,
    ) -> list[StepNode]:
        """Expand ``goal`` into a flat node list, root first.

        Args:
            goal: Text of the root step.
            mode: Frontier traversal order.
            on_progress: Called with a copy of the node list after every append.
                May be a plain function or a coroutine function.
            ambient_state: Optional store whose surroundings are added to
                breakdown prompts.

        Raises:
            ReasonerError: If any reasoner call fails. No partial result is returned.
        """
        mode = PlanMode(mode)
        root = StepNode(step=goal, level=0, step_number=0)
        nodes: list[StepNode] = [root]
        frontier: deque[StepNode] = deque([root])
        step_counter = 1

        logger.info(f"Building goal tree for '{goal}' ({mode})")

        while frontier:
            current = frontier.popleft() if mode == PlanMode.BFS else frontier.pop()

            if not current.is_root and current.func_call is None:
                call = await self.check_function_call(current.step)
                if call is not None:
                    leaf = StepNode(
                        parent_id=current.id,
                        step=current.step,
                        func_call=str(call),
                        level=current.level + 1,
                        step_number=step_counter,
                        projected_inventory=apply_call_to_inventory(
                            call, current.projected_inventory
                        ),
                    )
                    step_counter += 1
                    nodes.append(leaf)
                    await _notify(on_progress, nodes)
                    continue

            context = build_context(nodes, current)
            substeps = await self.breakdown(
                current.step, context, current.projected_inventory, ambient_state
            )
            if not substeps:
                continue

            children = []
            for text in substeps:
                children.append(
                    StepNode(
                        parent_id=current.id,
                        step=text,
                        level=current.level + 1,
                        step_number=step_counter,
                        projected_inventory=dict(current.projected_inventory),
                    )
                )
                step_counter += 1
            nodes.extend(children)

            if mode == PlanMode.BFS:
                frontier.extend(children)
            else:
                frontier.extend(reversed(children))

            await _notify(on_progress, nodes)

        if self._metrics is not None:
            self._metrics.record_plan(len(nodes))
        logger.info(f"Goal tree for '{goal}' complete: {len(nodes)} nodes")
        return nodes

    async def _ask(self, prompt: str) -> str:
        if self._metrics is not None:
            self._metrics.record_reasoner_call("planner")
        return await self._reasoner.complete(prompt)


async def _notify(callback: ProgressCallback | None, nodes: list[StepNode]) -> None:
    if callback is None:
        return
    result = callback(list(nodes))
    if inspect.isawaitable(result):
        await result


async def build_goal_tree(
    goal: str,
    mode: PlanMode | str = PlanMode.BFS,
    on_progress: ProgressCallback | None = None,
    ambient_state: SharedAgentState | None = None,
    *,
    reasoner: Reasoner,
    metrics: MetricsCollector | None = None,
) -> list[StepNode]:
    """Build a goal tree with a one-off :class:`GoalTreeBuilder`."""
    builder = GoalTreeBuilder(reasoner, metrics=metrics)
    return await builder.build(goal, mode, on_progress, ambient_state)
