"""Prompt templates for the reasoner.

This package provides templates for:
- goal breakdown and primitive matching
- tool dispatch instructions
- memory consolidation and social reasoning
"""

from craftmind.core.prompts.agent_prompts import (
    AGENT_SYSTEM_PROMPT,
    build_instruction,
    build_memory_prompt,
    build_sentiment_prompt,
    build_speech_filter_prompt,
)
from craftmind.core.prompts.planner_prompts import (
    PROMPT_VERSION,
    build_breakdown_prompt,
    build_func_call_prompt,
    format_inventory,
)

__all__ = [
    "AGENT_SYSTEM_PROMPT",
    "PROMPT_VERSION",
    "build_breakdown_prompt",
    "build_func_call_prompt",
    "build_instruction",
    "build_memory_prompt",
    "build_sentiment_prompt",
    "build_speech_filter_prompt",
    "format_inventory",
]
