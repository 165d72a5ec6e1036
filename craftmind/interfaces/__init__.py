"""Interface definitions for craftmind collaborators.

The core only talks to the game and to the reasoning service through these
interfaces, which keeps every component testable with stubs.
"""

from craftmind.interfaces.actions import (
    ActionCollaborator,
    ActionError,
    MissingIngredientsError,
    PathfindTimeout,
)
from craftmind.interfaces.errors import CraftmindError, ParseError, UnknownCapability
from craftmind.interfaces.perception import PerceptionCollaborator
from craftmind.interfaces.reasoner import Reasoner, ReasonerError

__all__ = [
    "ActionCollaborator",
    "ActionError",
    "CraftmindError",
    "MissingIngredientsError",
    "ParseError",
    "PathfindTimeout",
    "PerceptionCollaborator",
    "Reasoner",
    "ReasonerError",
    "UnknownCapability",
]
