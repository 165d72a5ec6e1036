"""Declared tool menus offered to the reasoner.

Each primitive is described by a pydantic argument model. The model
validates arguments and generates the JSON schema sent to the reasoner.
Argument names on the wire are camelCase; Python code uses snake_case.

A :class:`ToolMenu` is a closed set of :class:`ToolSpec`. The dispatch loop
only knows about menus, so the same loop drives world actions and memory
consolidation.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from craftmind.interfaces.actions import ActionCollaborator
from craftmind.interfaces.errors import ParseError, UnknownCapability

logger = logging.getLogger(__name__)

JSON_PARSE_FAILURE = "Could not parse function arguments as JSON"


class ToolArgs(BaseModel):
    """Base for tool argument models."""

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}


class NoArgs(ToolArgs):
    pass


class MineArgs(ToolArgs):
    goal_block: str = Field(..., alias="goalBlock", description="The block type to mine")
    desired_count: int = Field(..., alias="desiredCount", ge=1, description="How many blocks to mine")


class CraftArgs(ToolArgs):
    goal_item: str = Field(..., alias="goalItem", description="The item to craft")
    amount: int = Field(default=1, ge=1, description="How many to craft")


class PlaceArgs(ToolArgs):
    block_type: str = Field(..., alias="blockType", description="The block type to place")


class AttackArgs(ToolArgs):
    mob_type: str = Field(..., alias="mobType", description="The mob type to attack")


class SmeltArgs(ToolArgs):
    input_item_name: str = Field(..., alias="inputItemName", description="Item to smelt")
    output_item_name: str = Field(..., alias="outputItemName", description="Item to produce")
    quantity: int = Field(..., ge=1, description="How many to smelt")


class PlantCropArgs(ToolArgs):
    crop_name: str = Field(..., alias="cropName", description="The crop to plant")


class HarvestCropArgs(ToolArgs):
    crop_name: str = Field(..., alias="cropName", description="The crop to harvest")
    count_or_all: int | str = Field(
        default="all", alias="countOrAll", description='Number of crops, or "all"'
    )


class ChestItemArgs(ToolArgs):
    item_name: str = Field(..., alias="itemName", description="The item to move")
    count: int = Field(..., ge=1, description="How many to move")


class ChatArgs(ToolArgs):
    speech: str = Field(..., description="What to say in chat")


ToolHandler = Callable[[Any], Awaitable[str]]
ProducesFn = Callable[[Any], tuple[str, int] | None]


@dataclass(frozen=True)
class ToolSpec:
    """One invocable primitive.

    Attributes:
        name: Wire name of the tool.
        description: Description shown to the reasoner.
        args_model: Pydantic model validating the arguments.
        handler: Coroutine executing the tool and returning result text.
        produces: Optional function naming the item and count the tool
            tries to produce, used to enrich missing-ingredient failures.
    """

    name: str
    description: str
    args_model: type[ToolArgs]
    handler: ToolHandler
    produces: ProducesFn | None = None

    def schema(self) -> dict[str, Any]:
        """Function-tool schema in chat-completions format."""
        parameters = self.args_model.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        parameters.setdefault("properties", {})
        parameters["additionalProperties"] = False
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


class ToolMenu:
    """A closed menu of tools."""

    def __init__(self, tools: Iterable[ToolSpec]) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolSpec:
        """Return the tool called ``name``.

        Raises:
            UnknownCapability: If the menu has no such tool.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownCapability(name)
        return tool

    def schemas(self) -> list[dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    def parse_arguments(self, name: str, raw_arguments: str) -> ToolArgs:
        """Parse and validate raw JSON arguments for tool ``name``.

        Raises:
            UnknownCapability: If the menu has no such tool.
            ParseError: If the arguments are not JSON or fail validation.
        """
        tool = self.get(name)
        try:
            data = json.loads(raw_arguments) if raw_arguments.strip() else {}
        except json.JSONDecodeError as e:
            raise ParseError(name, raw_arguments, JSON_PARSE_FAILURE) from e
        if not isinstance(data, dict):
            raise ParseError(name, raw_arguments, "Function arguments must be a JSON object")
        try:
            return tool.args_model.model_validate(data)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise ParseError(name, raw_arguments, f"Invalid arguments ({details})") from e

    async def invoke(self, name: str, args: ToolArgs) -> str:
        """Run tool ``name`` with already validated ``args``."""
        return await self.get(name).handler(args)


def build_action_menu(
    actions: ActionCollaborator,
    speech_filter: Callable[[str], Awaitable[str]] | None = None,
) -> ToolMenu:
    """Build the world-action menu over an action collaborator.

    Args:
        actions: Collaborator executing the primitives.
        speech_filter: Optional rewrite applied to chat text before speaking.
    """

    async def mine(args: MineArgs) -> str:
        await actions.mine(args.goal_block, args.desired_count)
        return f"Mined {args.desired_count} of {args.goal_block}."

    async def craft(args: CraftArgs) -> str:
        await actions.craft(args.goal_item, args.amount)
        return f"Crafted {args.amount} of {args.goal_item}."

    async def place(args: PlaceArgs) -> str:
        await actions.place(args.block_type)
        return f"Placed {args.block_type}."

    async def attack(args: AttackArgs) -> str:
        await actions.attack(args.mob_type)
        return f"Attacked {args.mob_type}."

    async def smelt(args: SmeltArgs) -> str:
        await actions.smelt(args.input_item_name, args.output_item_name, args.quantity)
        return f"Smelted {args.quantity} of {args.input_item_name} into {args.output_item_name}."

    async def plant_crop(args: PlantCropArgs) -> str:
        await actions.plant_crop(args.crop_name)
        return f"Planted {args.crop_name}."

    async def harvest_crop(args: HarvestCropArgs) -> str:
        value = args.count_or_all
        if isinstance(value, str) and value.strip().lower() == "all":
            await actions.harvest_crop(args.crop_name, "all")
            return f"Harvested all of {args.crop_name} (one pass)."
        try:
            count = int(value)
        except ValueError:
            await actions.harvest_crop(args.crop_name, 1)
            return f"Harvested 1 of {args.crop_name} by default."
        await actions.harvest_crop(args.crop_name, count)
        return f"Harvested {count} of {args.crop_name}."

    async def sort_inventory(args: NoArgs) -> str:
        await actions.sort_inventory()
        return "Sorted inventory."

    async def place_chest(args: NoArgs) -> str:
        await actions.place_chest()
        return "Placed chest."

    async def store_item(args: ChestItemArgs) -> str:
        await actions.store_item_in_chest(args.item_name, args.count)
        return f"Stored {args.count} of {args.item_name} in chest."

    async def retrieve_item(args: ChestItemArgs) -> str:
        await actions.retrieve_item_from_chest(args.item_name, args.count)
        return f"Retrieved {args.count} of {args.item_name} from chest."

    async def chat(args: ChatArgs) -> str:
        speech = args.speech
        if speech_filter is not None:
            speech = await speech_filter(speech)
        await actions.chat(speech)
        return f"Chatted: {speech}"

    return ToolMenu(
        [
            ToolSpec(
                "mine",
                "Finds, goes to and mines the given number of blocks of a type. "
                "Picking the right tool is handled automatically.",
                MineArgs,
                mine,
                produces=lambda a: (a.goal_block, a.desired_count),
            ),
            ToolSpec(
                "craft",
                "Crafts an item from the inventory, placing a crafting table if needed.",
                CraftArgs,
                craft,
                produces=lambda a: (a.goal_item, a.amount),
            ),
            ToolSpec("place", "Places a block from the inventory.", PlaceArgs, place),
            ToolSpec("attack", "Attacks the nearest mob of a type until it dies.", AttackArgs, attack),
            ToolSpec(
                "smelt",
                "Smelts items in a furnace. Fuel is handled automatically.",
                SmeltArgs,
                smelt,
                produces=lambda a: (a.output_item_name, a.quantity),
            ),
            ToolSpec("plantCrop", "Plants a crop on suitable farmland.", PlantCropArgs, plant_crop),
            ToolSpec(
                "harvestCrop",
                'Harvests grown crops; countOrAll is a number or "all".',
                HarvestCropArgs,
                harvest_crop,
            ),
            ToolSpec("sortInventory", "Organizes the inventory.", NoArgs, sort_inventory),
            ToolSpec("placeChest", "Acquires and places a chest.", NoArgs, place_chest),
            ToolSpec(
                "storeItemInChest",
                "Stores a number of an item in an available chest.",
                ChestItemArgs,
                store_item,
            ),
            ToolSpec(
                "retrieveItemFromChest",
                "Retrieves a number of an item from whichever chest holds it.",
                ChestItemArgs,
                retrieve_item,
                produces=lambda a: (a.item_name, a.count),
            ),
            ToolSpec("chat", "Says something in game chat.", ChatArgs, chat),
        ]
    )
