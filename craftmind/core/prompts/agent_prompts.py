"""Prompt templates for tool dispatch, memory consolidation and social reasoning."""

from __future__ import annotations

AGENT_SYSTEM_PROMPT = """You are a Minecraft agent acting in a live world.
You can call exactly one function per turn from the tools you are given.
After every call you will receive the function result together with an updated view of your state.
When the instruction is complete, or cannot be completed, answer in plain text without calling a function."""

INSTRUCTION_TEMPLATE = """Current state:
{state}

Instruction: {instruction}"""

MEMORY_PROMPT_TEMPLATE = """You are a Minecraft agent's memory center with biological-like memory formation. Always speak in the first person, because the information you see is happening to you.
Analyze the following recent events and decide what key details, actions or context to store as memories. Things that may be useful in the short term should go to short-term memory.
Use function calls to store relevant memories. Do not store stats; store new things you have learned about the world you are in.
Here is the information:
{recent_events}"""

SENTIMENT_PROMPT_TEMPLATE = """You are a sentiment analysis model. Describe the sentiment of this message and decide whether your relationship with the person who said it should be adjusted accordingly.
Answer with one word: positive, negative or neutral.
"{message}\""""

SPEECH_FILTER_PROMPT_TEMPLATE = """{personality}
Rewrite the supplied text so it reflects your personality while preserving the core meaning and tone. Do not make drastic changes unless necessary.
Between changing the meaning of the message and upholding your personality, always maintain the meaning.
Output ONLY the rewritten text, with no extra commentary.
User text: "{text}"
Rewritten:"""

DEFAULT_PERSONALITY = "You are a Minecraft character with a friendly, upbeat personality."


def build_instruction(instruction: str, state_text: str) -> str:
    """Combine a rendered state summary with an instruction for the dispatch loop."""
    return INSTRUCTION_TEMPLATE.format(state=state_text, instruction=instruction)


def build_memory_prompt(recent_events: list[str]) -> str:
    return MEMORY_PROMPT_TEMPLATE.format(recent_events="\n".join(recent_events))


def build_sentiment_prompt(message: str) -> str:
    return SENTIMENT_PROMPT_TEMPLATE.format(message=message)


def build_speech_filter_prompt(text: str, personality: str = DEFAULT_PERSONALITY) -> str:
    return SPEECH_FILTER_PROMPT_TEMPLATE.format(personality=personality, text=text)
