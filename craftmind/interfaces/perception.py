"""Perception collaborator interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from craftmind.models.world import Coordinate, MobSighting, ThreatReport, Vitals


class PerceptionCollaborator(ABC):
    """Abstract interface for reading the world.

    Implementations that run long synchronous scans should yield with
    ``await asyncio.sleep(0)`` periodically so other scheduled work is not
    starved.
    """

    @abstractmethod
    async def scan_blocks(self) -> dict[str, Coordinate]:
        """Return the nearest coordinate of every visible block type."""
        ...

    @abstractmethod
    async def scan_mobs(self) -> list[MobSighting]:
        """Return visible mobs with their distances."""
        ...

    @abstractmethod
    async def scan_inventory(self) -> list[str]:
        """Return inventory lines formatted as ``item:count``."""
        ...

    @abstractmethod
    async def check_threat(self) -> ThreatReport:
        """Report whether the agent is currently under attack."""
        ...

    async def scan_players(self) -> list[str] | None:
        """Return nearby player names, or None if not supported."""
        return None

    async def scan_vitals(self) -> Vitals | None:
        """Return health, hunger, position and equipment, or None if not supported."""
        return None
