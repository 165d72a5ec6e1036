"""Hosted LLM reasoner adapter."""

from craftmind.llm.client import (
    DEFAULT_MODELS,
    MAX_LENGTH,
    VALID_PROVIDERS,
    LLMReasoner,
    LLMUsage,
    ReasonerConfig,
)

__all__ = [
    "DEFAULT_MODELS",
    "MAX_LENGTH",
    "VALID_PROVIDERS",
    "LLMReasoner",
    "LLMUsage",
    "ReasonerConfig",
]
