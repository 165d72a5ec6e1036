"""Tests for the social ledger."""

from __future__ import annotations

import pytest
from conftest import ScriptedReasoner

from craftmind.core.metrics import MetricsCollector
from craftmind.models.log import LogRole
from craftmind.social.ledger import Social, classify_sentiment_answer, keyword_sentiment
from craftmind.state.shared import SharedAgentState


class TestSentimentHelpers:
    @pytest.mark.parametrize(
        ("answer", "score"),
        [("Positive.", 1), ("negative", -1), ("Neutral", 0), ("no idea", 0)],
    )
    def test_classify_answer(self, answer: str, score: int) -> None:
        assert classify_sentiment_answer(answer) == score

    @pytest.mark.parametrize(
        ("message", "score"),
        [
            ("Thanks, great work!", 1),
            ("You are so annoying, I hate this", -1),
            ("Where is the village?", 0),
            ("nice but annoying", 0),
        ],
    )
    def test_keyword_sentiment(self, message: str, score: int) -> None:
        assert keyword_sentiment(message) == score


class TestSocial:
    """Ledger updates."""

    @pytest.mark.asyncio
    async def test_listen_without_reasoner(self) -> None:
        state = SharedAgentState()
        social = Social(state)

        score = await social.listen("thanks for the help", "alex")

        assert score == 1
        assert state.feelings_to_others["alex"].sentiment == 1
        assert state.feelings_to_others["alex"].reasons == ["Analyzed via keywords. Score: 1"]
        assert state.event_log[-1].role == LogRole.USER
        assert state.event_log[-1].metadata == {"sender": "alex"}

    @pytest.mark.asyncio
    async def test_listen_with_reasoner(self) -> None:
        state = SharedAgentState()
        metrics = MetricsCollector()
        reasoner = ScriptedReasoner(complete=lambda prompt: "Negative")
        social = Social(state, reasoner=reasoner, metrics=metrics)

        assert await social.listen("get out of my house", "bob") == -1

        assert '"get out of my house"' in reasoner.prompts[0]
        assert state.feelings_to_others["bob"].reasons == ["Analyzed via reasoner. Score: -1"]
        assert metrics.get_metrics().reasoner_calls_by_component == {"social": 1}

    @pytest.mark.asyncio
    async def test_speech_filter_without_reasoner(self) -> None:
        social = Social(SharedAgentState())
        assert await social.filter_message_for_speech("  hello there ") == "hello there"
        assert await social.filter_message_for_speech("   ") == ""

    @pytest.mark.asyncio
    async def test_speech_filter_uses_personality(self) -> None:
        reasoner = ScriptedReasoner(complete=lambda prompt: '"Ahoy there, matey!"')
        social = Social(SharedAgentState(), reasoner=reasoner, personality="You are a pirate.")

        assert await social.filter_message_for_speech("hello") == "Ahoy there, matey!"
        assert reasoner.prompts[0].startswith("You are a pirate.")
        assert 'User text: "hello"' in reasoner.prompts[0]

    @pytest.mark.asyncio
    async def test_blank_rewrite_keeps_original(self) -> None:
        social = Social(SharedAgentState(), reasoner=ScriptedReasoner(complete=lambda prompt: "  "))
        assert await social.filter_message_for_speech("hello") == "hello"

    def test_other_ledger(self) -> None:
        state = SharedAgentState()
        Social(state).update_others_feelings_towards_self("alex", -1, ["I took their diamonds"])
        assert state.others_feelings_towards_self["alex"].reasons == ["I took their diamonds"]

    def test_analyze_behavior(self) -> None:
        social = Social(SharedAgentState())
        assert social.analyze_behavior() is True
        assert social.analyze_behavior({"alignment": "Aligned"}) is True
        assert social.analyze_behavior({"alignment": "conflict"}) is False

    def test_analyze_goals(self) -> None:
        social = Social(SharedAgentState())
        assert social.analyze_goals(["Get wood(5)"], {"alex": ["Get wood(5)", "Build a house"]})
        assert not social.analyze_goals(["Get wood(5)"], {"alex": ["Get stone(3)"]})
