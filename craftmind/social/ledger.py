"""Social ledger: feelings between the agent and other players.

Sentiment scores are -1 (negative), 0 (neutral) or +1 (positive). With a
reasoner configured, incoming chat is classified by the reasoner and
outgoing speech is rewritten to match the agent's personality; without one,
a keyword heuristic classifies chat and speech passes through unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

from craftmind.core.metrics import MetricsCollector
from craftmind.core.prompts.agent_prompts import (
    DEFAULT_PERSONALITY,
    build_sentiment_prompt,
    build_speech_filter_prompt,
)
from craftmind.interfaces.reasoner import Reasoner
from craftmind.models.log import LogRole
from craftmind.state.shared import SharedAgentState

logger = logging.getLogger(__name__)

_POSITIVE_WORDS = frozenset({"thanks", "thank", "great", "nice", "love", "awesome", "good", "friend", "help"})
_NEGATIVE_WORDS = frozenset({"hate", "stupid", "kill", "die", "bad", "awful", "idiot", "annoying", "attack"})


def classify_sentiment_answer(answer: str) -> int:
    """Map a reasoner sentiment answer onto -1, 0 or 1."""
    lowered = answer.lower()
    if "positive" in lowered:
        return 1
    if "negative" in lowered:
        return -1
    return 0


def keyword_sentiment(message: str) -> int:
    """Classify ``message`` by counting positive and negative keywords."""
    words = {w.strip(".,!?;:\"'").lower() for w in message.split()}
    score = len(words & _POSITIVE_WORDS) - len(words & _NEGATIVE_WORDS)
    if score > 0:
        return 1
    if score < 0:
        return -1
    return 0


class Social:
    """Maintains both social ledgers on the shared state store."""

    def __init__(
        self,
        state: SharedAgentState,
        reasoner: Reasoner | None = None,
        personality: str = DEFAULT_PERSONALITY,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._state = state
        self._reasoner = reasoner
        self._personality = personality
        self._metrics = metrics

    def update_feelings_towards(self, person: str, sentiment: float, reasons: list[str]) -> None:
        """Update how the agent feels about ``person``."""
        self._state.update_feelings_towards(person, sentiment, reasons)

    def update_others_feelings_towards_self(
        self, person: str, sentiment: float, reasons: list[str]
    ) -> None:
        """Update the model of how ``person`` feels about the agent."""
        self._state.update_others_feelings_towards_self(person, sentiment, reasons)

    def analyze_behavior(self, context: dict[str, Any] | None = None) -> bool:
        """Whether behavior is aligned with others.

        Aligned unless ``context["alignment"]`` says otherwise.
        """
        if not context:
            return True
        return str(context.get("alignment", "aligned")).lower() == "aligned"

    def analyze_goals(self, own_goals: list[str], others_goals: dict[str, list[str]]) -> bool:
        """Whether any of the agent's goals is shared by someone else."""
        own = set(own_goals)
        return any(own.intersection(goals) for goals in others_goals.values())

    async def listen(self, message: str, sender: str) -> int:
        """Update feelings towards ``sender`` from an incoming chat message.

        Returns:
            The sentiment score recorded.
        """
        self._state.log_message(LogRole.USER, message, {"sender": sender})
        if self._reasoner is not None:
            if self._metrics is not None:
                self._metrics.record_reasoner_call("social")
            answer = await self._reasoner.complete(build_sentiment_prompt(message))
            sentiment = classify_sentiment_answer(answer)
            reason = f"Analyzed via reasoner. Score: {sentiment}"
        else:
            sentiment = keyword_sentiment(message)
            reason = f"Analyzed via keywords. Score: {sentiment}"
        self.update_feelings_towards(sender, sentiment, [reason])
        logger.debug(f"Sentiment towards {sender}: {sentiment}")
        return sentiment

    async def filter_message_for_speech(self, text: str) -> str:
        """Rewrite outgoing speech to reflect the agent's personality."""
        content = text.strip()
        if not content:
            return ""
        if self._reasoner is None:
            return content
        if self._metrics is not None:
            self._metrics.record_reasoner_call("social")
        rewritten = await self._reasoner.complete(
            build_speech_filter_prompt(content, self._personality)
        )
        return rewritten.strip().strip('"') or content
