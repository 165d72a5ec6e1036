"""Memory subsystem: bounded short-term memory and reasoner-driven consolidation."""

from craftmind.memory.consolidation import MemoryConsolidator, build_memory_menu
from craftmind.memory.store import DEFAULT_SHORT_TERM_CAPACITY, Memory, always_promote

__all__ = [
    "DEFAULT_SHORT_TERM_CAPACITY",
    "Memory",
    "MemoryConsolidator",
    "always_promote",
    "build_memory_menu",
]
