"""World snapshot models written by perception and read by everyone else."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    """A block position in world coordinates."""

    x: float = Field(..., description="X coordinate")
    y: float = Field(..., description="Y coordinate")
    z: float = Field(..., description="Z coordinate")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"({self.x:.0f}, {self.y:.0f}, {self.z:.0f})"


class MobSighting(BaseModel):
    """A mob visible to the agent and how far away it is."""

    name: str = Field(..., min_length=1)
    distance: float = Field(..., ge=0.0, description="Distance in blocks")

    model_config = {"frozen": True}


class EquippedItems(BaseModel):
    """Armor and off-hand slots."""

    head: str | None = None
    chest: str | None = None
    legs: str | None = None
    feet: str | None = None
    offhand: str | None = None


class Vitals(BaseModel):
    """Health, hunger, position and equipment reported by perception."""

    health: float = Field(default=20.0, ge=0.0)
    hunger: float = Field(default=20.0, ge=0.0)
    position: Coordinate | None = None
    equipped_items: EquippedItems = Field(default_factory=EquippedItems)


class ThreatReport(BaseModel):
    """Result of the perception interrupt predicate."""

    under_attack: bool = False
    attacker: str | None = None
    message: str = ""

    model_config = {"frozen": True}


class Sentiment(BaseModel):
    """Feelings in one direction between the agent and a person."""

    sentiment: float = Field(default=0.0, description="Negative, neutral or positive score")
    reasons: list[str] = Field(default_factory=list)
