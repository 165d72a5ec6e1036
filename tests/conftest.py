"""Shared test doubles for the reasoner, perception and action collaborators."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from craftmind.interfaces.actions import ActionCollaborator
from craftmind.interfaces.perception import PerceptionCollaborator
from craftmind.interfaces.reasoner import Reasoner
from craftmind.models.messages import ReasonerReply, TranscriptMessage
from craftmind.models.world import Coordinate, MobSighting, ThreatReport, Vitals

BREAKDOWN_MARKER = 'Here is the step for you to break down:\n"'
FUNC_CALL_MARKER = "This is the step: "

ReplyScript = list[ReasonerReply | Exception] | Callable[[int], ReasonerReply | Exception]


class ScriptedReasoner(Reasoner):
    """Reasoner that answers from a script.

    ``complete`` answers through a callable taking the prompt. ``chat``
    answers from a list (the last reply repeats once the list runs out) or
    from a callable taking the zero-based round index. Exceptions in the
    script are raised instead of returned.
    """

    def __init__(
        self,
        complete: Callable[[str], str | Exception] | None = None,
        replies: ReplyScript | None = None,
    ) -> None:
        self._complete = complete or (lambda prompt: "")
        self._replies = replies if replies is not None else [ReasonerReply(text="ok")]
        self.prompts: list[str] = []
        self.chat_calls: list[tuple[list[TranscriptMessage], list[dict[str, Any]] | None]] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        result = self._complete(prompt)
        if isinstance(result, Exception):
            raise result
        return result

    async def chat(
        self,
        messages: list[TranscriptMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ReasonerReply:
        self.chat_calls.append((list(messages), tools))
        index = len(self.chat_calls) - 1
        if callable(self._replies):
            reply = self._replies(index)
        else:
            reply = self._replies[min(index, len(self._replies) - 1)]
        if isinstance(reply, Exception):
            raise reply
        return reply


class PlannerReasoner(ScriptedReasoner):
    """Reasoner answering planner prompts from lookup tables.

    Steps missing from ``calls`` answer "null"; steps missing from
    ``breakdowns`` break down into nothing.
    """

    def __init__(
        self,
        breakdowns: dict[str, list[str]] | None = None,
        calls: dict[str, str] | None = None,
    ) -> None:
        super().__init__(complete=self._answer)
        self.breakdowns = breakdowns or {}
        self.calls = calls or {}
        self.breakdown_steps: list[str] = []
        self.call_checks: list[str] = []

    def _answer(self, prompt: str) -> str:
        if BREAKDOWN_MARKER in prompt:
            step = prompt.split(BREAKDOWN_MARKER)[-1].rsplit('"', 1)[0]
            self.breakdown_steps.append(step)
            steps = self.breakdowns.get(step, [])
            return '{"steps": [' + ", ".join(f'"{s}"' for s in steps) + "]}"
        if FUNC_CALL_MARKER in prompt:
            step = prompt.split(FUNC_CALL_MARKER)[-1].strip()
            self.call_checks.append(step)
            return self.calls.get(step, "null")
        return "neutral"


PICKAXE_GOAL = "Acquire wooden pickaxe (1)"
PICKAXE_STEPS = ["Get wood(5)", "craft wooden planks(4)", "get sticks(2)", "craft wooden pickaxe(1)"]
PICKAXE_CALLS = {
    "Get wood(5)": "mine(wood, 5)",
    "craft wooden planks(4)": "craft(wooden_planks, 4)",
    "get sticks(2)": "craft(sticks, 2)",
    "craft wooden pickaxe(1)": "craft(wooden_pickaxe, 1)",
}


def pickaxe_reasoner() -> PlannerReasoner:
    return PlannerReasoner({PICKAXE_GOAL: PICKAXE_STEPS}, dict(PICKAXE_CALLS))


class RecordingActions(ActionCollaborator):
    """Action collaborator that records calls and raises scripted failures.

    ``failures`` maps a primitive name to an exception, or to a list of
    exceptions consumed one per call (an exhausted list means success).
    """

    def __init__(self, failures: dict[str, Exception | list[Exception]] | None = None) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.failures = failures or {}

    async def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        failure = self.failures.get(name)
        if isinstance(failure, list):
            if failure:
                raise failure.pop(0)
        elif failure is not None:
            raise failure

    async def mine(self, block: str, count: int) -> None:
        await self._record("mine", block, count)

    async def craft(self, item: str, amount: int = 1) -> None:
        await self._record("craft", item, amount)

    async def place(self, block_type: str) -> None:
        await self._record("place", block_type)

    async def attack(self, mob_type: str) -> None:
        await self._record("attack", mob_type)

    async def smelt(self, input_item: str, output_item: str, quantity: int) -> None:
        await self._record("smelt", input_item, output_item, quantity)

    async def plant_crop(self, name: str) -> None:
        await self._record("plant_crop", name)

    async def harvest_crop(self, name: str, count_or_all: int | str) -> None:
        await self._record("harvest_crop", name, count_or_all)

    async def sort_inventory(self) -> None:
        await self._record("sort_inventory")

    async def place_chest(self) -> None:
        await self._record("place_chest")

    async def store_item_in_chest(self, item: str, count: int) -> None:
        await self._record("store_item_in_chest", item, count)

    async def retrieve_item_from_chest(self, item: str, count: int) -> None:
        await self._record("retrieve_item_from_chest", item, count)

    async def chat(self, text: str) -> None:
        await self._record("chat", text)


class StubPerception(PerceptionCollaborator):
    """Perception collaborator returning whatever its attributes hold."""

    def __init__(self) -> None:
        self.blocks: dict[str, Coordinate] = {}
        self.mobs: list[MobSighting] = []
        self.inventory: list[str] = []
        self.threat = ThreatReport()
        self.players: list[str] | None = None
        self.vitals: Vitals | None = None
        self.block_error: Exception | None = None

    async def scan_blocks(self) -> dict[str, Coordinate]:
        if self.block_error is not None:
            raise self.block_error
        return self.blocks

    async def scan_mobs(self) -> list[MobSighting]:
        return self.mobs

    async def scan_inventory(self) -> list[str]:
        return self.inventory

    async def check_threat(self) -> ThreatReport:
        return self.threat

    async def scan_players(self) -> list[str] | None:
        return self.players

    async def scan_vitals(self) -> Vitals | None:
        return self.vitals


@pytest.fixture
def actions() -> RecordingActions:
    return RecordingActions()


@pytest.fixture
def perception() -> StubPerception:
    return StubPerception()
