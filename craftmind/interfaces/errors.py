"""Base error types shared by every component."""

from __future__ import annotations


class CraftmindError(Exception):
    """Base class for all craftmind errors."""

    pass


class ParseError(CraftmindError):
    """Malformed invocation arguments.

    Recovered locally by the dispatch loop and reported inline.
    """

    def __init__(self, tool_name: str, raw_arguments: str, reason: str) -> None:
        super().__init__(f'Could not parse arguments for "{tool_name}": {reason}')
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments
        self.reason = reason


class UnknownCapability(CraftmindError):
    """The reasoner asked for a primitive that is not in the declared menu."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f'Function "{tool_name}" not implemented.')
        self.tool_name = tool_name
