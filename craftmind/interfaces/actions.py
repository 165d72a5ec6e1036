"""Action collaborator interface: the closed menu of world-mutating primitives."""

from __future__ import annotations

from abc import ABC, abstractmethod

from craftmind.interfaces.errors import CraftmindError


class ActionError(CraftmindError):
    """Error raised when a primitive fails.

    Primitives have no partial-success semantics: they either complete or
    raise this error as a unit.
    """

    pass


class MissingIngredientsError(ActionError):
    """A primitive failed because a prerequisite item is missing.

    Attributes:
        item: The item the primitive was trying to produce.
    """

    def __init__(self, message: str, item: str | None = None) -> None:
        super().__init__(message)
        self.item = item


class PathfindTimeout(ActionError):
    """Movement or path-finding did not reach its target in time.

    This is the only failure class that is retried.
    """

    pass


class ActionCollaborator(ABC):
    """Abstract interface for the game actuation layer.

    Every primitive is a coroutine. Implementations raise ActionError (or a
    subclass) on failure and return None on success.
    """

    @abstractmethod
    async def mine(self, block: str, count: int) -> None:
        """Find, reach and extract ``count`` blocks of ``block``."""
        ...

    @abstractmethod
    async def craft(self, item: str, amount: int = 1) -> None:
        """Craft ``amount`` of ``item`` from available resources."""
        ...

    @abstractmethod
    async def place(self, block_type: str) -> None:
        """Place a block of ``block_type`` from the inventory."""
        ...

    @abstractmethod
    async def attack(self, mob_type: str) -> None:
        """Attack the nearest ``mob_type`` until it is defeated."""
        ...

    @abstractmethod
    async def smelt(self, input_item: str, output_item: str, quantity: int) -> None:
        """Smelt ``quantity`` of ``input_item`` into ``output_item``."""
        ...

    @abstractmethod
    async def plant_crop(self, name: str) -> None:
        """Plant ``name`` on suitable farmland."""
        ...

    @abstractmethod
    async def harvest_crop(self, name: str, count_or_all: int | str) -> None:
        """Harvest ``count_or_all`` grown crops, or every one when ``"all"``."""
        ...

    @abstractmethod
    async def sort_inventory(self) -> None:
        """Organize the inventory."""
        ...

    @abstractmethod
    async def place_chest(self) -> None:
        """Acquire and place a chest."""
        ...

    @abstractmethod
    async def store_item_in_chest(self, item: str, count: int) -> None:
        """Store ``count`` of ``item`` in an available chest."""
        ...

    @abstractmethod
    async def retrieve_item_from_chest(self, item: str, count: int) -> None:
        """Retrieve ``count`` of ``item`` from whichever chest holds it."""
        ...

    @abstractmethod
    async def chat(self, text: str) -> None:
        """Say ``text`` in game chat."""
        ...
