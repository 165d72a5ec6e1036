"""Prompt templates for goal decomposition.

Two prompts drive the planner: a breakdown prompt that splits a step into
ordered substeps, and a function-call prompt that asks whether a step maps
to exactly one primitive.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from craftmind.state.shared import SharedAgentState

# Prompt version for tracking
PROMPT_VERSION = "1.0.0"

BREAKDOWN_PROMPT = """Break down a task in Minecraft for my bot to complete and output the steps in JSON format.

# How To Breakdown Steps

1. Identify the task that needs to be broken down. Only generate steps that are applicable to Minecraft gameplay.
2. Determine the key actions required to complete the task. Always specify quantities of items in parentheses. Do not mention crafting tables or furnaces. When a step involves crafting, just say craft *item*(*amount*). When a step involves smelting, just say smelt *initial item* to get *desired item*(*amount*).
3. Break these actions down into steps.
4. Ensure each step is concise and follows the logical order of completion.

# Output Format

Output only a JSON object with a single key "steps" whose value is an array of step strings:
{{"steps": ["Step 1", "Step 2", "Step 3"]}}

# Considerations

The bot knows where everything is, so never write steps about finding, looking or listening for things.
Never mention tools. The bot determines what equipment it needs on its own.

# Examples

**Input:** Farm wheat
**Output:** {{"steps": ["Get seeds(3)", "till soil(3)", "plant seeds(3)", "water crops(3)", "harvest wheat(3)"]}}

**Input:** Get wooden pickaxe (1)
**Output:** {{"steps": ["Get wood(5)", "craft wooden planks(4)", "get sticks(2)", "craft wooden pickaxe(1)"]}}

**Input:** Get an iron sword
**Output:** {{"steps": ["Gather wood(1)", "craft wooden planks(4)", "gather iron ore(2)", "smelt iron ore to get iron ingots(2)", "craft sticks(1)", "craft iron sword(1)"]}}

**Input:** Get rotten flesh (6)
**Output:** {{"steps": ["Loot rotten flesh (6) from zombies"]}}

{context}Here is the step for you to break down:
"{step}"
"""

CONTEXT_TEMPLATE = """As you are deciding what steps to include in your breakdown of "{step}", keep in mind that your character has already done the following things (listed as steps and substeps): {context}. Avoid redundant work.
If a previous step acquired a needed resource, do not write a step for acquiring it again.
{inventory_line}
{environment}
"""

FUNC_CALL_PROMPT = """Given a step, determine if this step can be completed in its ENTIRETY by a bot using JUST ONE of the following methods:

  - mine(goalBlock: string, count: number): Finds, goes to and extracts count blocks of the given type. All wood is generic, so mine(wood,4) collects 4 wood blocks.
  - craft(goalItem: string, amount: number): Crafts the item using available resources.
  - place(blockType: string): Places a block of the given type.
  - attack(mobType: string): Attacks the nearest mob of that type until it is defeated.
  - lootFromMob(mobType: string, mobLootItem: string, count: number): Kills mobType until count of mobLootItem has been collected.
  - smelt(inputItemName: string, outputItemName: string, quantity: number): Smelts quantity of the input item into the output item.
  - plantCrop(cropName: string): Plants the crop in suitable farmland.
  - harvestCrop(cropName: string, count: number OR "all"): Harvests count grown crops, or every one with "all".
  - sortInventory(): Organizes the inventory.
  - placeChest(): Acquires and places a chest.
  - storeItemInChest(itemName: string, count: number): Stores count of the item in a chest.
  - retrieveItemFromChest(itemName: string, count: number): Retrieves count of the item from a chest.

EXAMPLES:
**Input**: "Gather 4 wood"
**Output**: mine(wood,4)

**Input**: "Craft a pickaxe"
**Output**: craft(pickaxe,1)

**Input**: "Loot 3 rotten_flesh from a zombie"
**Output**: lootFromMob(zombie,rotten_flesh,3)

**Input**: "Smelt 5 iron_ore into 5 iron_ingot"
**Output**: smelt(iron_ore,iron_ingot,5)

**Input**: "Harvest all carrots"
**Output**: harvestCrop(carrots,"all")

**Input**: "Enter the nether"
**Output**: null

If the step can be completed COMPLETELY using one of these methods, SAY ONLY the corresponding function call in the format methodName(argument1, argument2, ...). Otherwise, SAY ONLY "null".
This is the step: {step}"""


def format_inventory(inventory: dict[str, int]) -> str:
    """Render an inventory mapping as ``item(count), item(count)``."""
    return ", ".join(f"{item}({count})" for item, count in inventory.items())


def _environment_details(state: SharedAgentState) -> str:
    lines = []
    if state.players_nearby:
        lines.append(f"Players nearby: {', '.join(state.players_nearby)}.")
    if state.visible_blocks:
        lines.append(f"Visible block types include: {', '.join(state.visible_blocks)}.")
    if state.visible_mobs:
        lines.append(f"Visible mobs include: {', '.join(m.name for m in state.visible_mobs)}.")
    lines.append(f"Your health is {state.health:g} and your hunger is {state.hunger:g}.")
    return "Additional environment context:\n" + "\n".join(lines)


def build_breakdown_prompt(
    step: str,
    context: str = "",
    inventory: dict[str, int] | None = None,
    state: SharedAgentState | None = None,
) -> str:
    """Build the prompt asking the reasoner to split ``step`` one level."""
    context_block = ""
    if context.strip() or inventory or state is not None:
        inventory_text = format_inventory(inventory or {})
        inventory_line = (
            f"At this time, your inventory includes: {inventory_text}." if inventory_text else ""
        )
        context_block = CONTEXT_TEMPLATE.format(
            step=step,
            context=context.strip() or "nothing yet",
            inventory_line=inventory_line,
            environment=_environment_details(state) if state is not None else "",
        )
    return BREAKDOWN_PROMPT.format(context=context_block, step=step)


def build_func_call_prompt(step: str) -> str:
    """Build the prompt asking whether ``step`` maps to exactly one primitive."""
    return FUNC_CALL_PROMPT.format(step=step)
