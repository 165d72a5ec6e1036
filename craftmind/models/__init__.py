"""Shared data models for craftmind.

All models use Pydantic for validation and serialization.
"""

from craftmind.models.log import LogEntry, LogRole
from craftmind.models.messages import (
    MessageRole,
    ReasonerReply,
    ToolInvocation,
    TranscriptMessage,
)
from craftmind.models.plan import PlanMode, StepNode
from craftmind.models.world import (
    Coordinate,
    EquippedItems,
    MobSighting,
    Sentiment,
    ThreatReport,
    Vitals,
)

__all__ = [
    "Coordinate",
    "EquippedItems",
    "LogEntry",
    "LogRole",
    "MessageRole",
    "MobSighting",
    "PlanMode",
    "ReasonerReply",
    "Sentiment",
    "StepNode",
    "ThreatReport",
    "ToolInvocation",
    "TranscriptMessage",
    "Vitals",
]
