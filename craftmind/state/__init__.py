"""Per-agent shared state store."""

from craftmind.state.shared import SharedAgentState

__all__ = ["SharedAgentState"]
