"""Static acquisition hints for items and blocks.

Consulted by the dispatch loop when a primitive fails for lack of
ingredients, so the reasoner learns how to obtain what is missing.
"""

from __future__ import annotations

import re

ITEM_HINTS: dict[str, str] = {
    "Stick": "Crafted from 2 wooden planks. Conversion rate: 2 planks turns to 4 sticks",
    "Wooden Planks": "Crafted from 1 wood log. Conversion rate: 1 log turns to 4 planks",
    "Coal": "Mined from coal ore.",
    "Charcoal": "Obtained by smelting wood logs in a furnace. One to one conversion rate",
    "Iron Ingot": "Obtained by smelting iron ore in a furnace.",
    "Gold Ingot": "Obtained by smelting gold ore.",
    "Diamond": "Mined from diamond ore.",
    "Emerald": "Obtained by mining emerald ore or trading with villagers.",
    "Lapis Lazuli": "Obtained by mining lapis lazuli ore.",
    "Redstone Dust": "Obtained by mining redstone ore.",
    "Glowstone Dust": "Obtained by mining glowstone blocks in the Nether or trading with cleric villagers.",
    "Nether Quartz": "Mined from Nether quartz ore in the Nether.",
    "Netherite Scrap": "Obtained by smelting ancient debris found in the Nether.",
    "Netherite Ingot": "Crafted from 4 netherite scraps and 4 gold ingots.",
    "Flint": "Occasionally dropped from gravel when mined or broken.",
    "Feather": "Dropped by chickens or parrots when killed.",
    "Leather": "Dropped by cows, horses, llamas, donkeys.",
    "Bone": "Dropped by skeletons.",
    "Gunpowder": "Dropped by creepers.",
    "String": "Dropped by spiders.",
    "Ender Pearl": "Dropped by endermen.",
    "Blaze Rod": "Dropped by blazes in Nether fortresses.",
    "Eye of Ender": "Crafted from one ender pearl and one blaze powder.",
    "Ghast Tear": "Dropped by ghasts in the Nether.",
    "Slimeball": "Dropped by slimes, looted from chests, or traded with wandering traders.",
    "Magma Cream": "Dropped by magma cubes or crafted from blaze powder and slimeballs.",
    "Blaze Powder": "Crafted from blaze rods. One blaze rod converts to two blaze powder.",
    "Spider Eye": "Dropped by spiders, cave spiders, witches, or found in chests.",
    "Fermented Spider Eye": "Crafted from spider eye, brown mushroom, and sugar.",
    "Sugar": "Crafted from sugar cane.",
    "Egg": "Occasionally laid by chickens. Can be found in village chests.",
    "Ink Sac": "Dropped by squids.",
    "Paper": "Crafted from 3 sugar cane.",
    "Book": "Crafted from 3 leather and 1 paper. Can also be obtained by mining bookshelves.",
    "Glass Bottle": "Crafted from 3 glass blocks.",
    "Nether Wart": "Found growing naturally in Nether fortresses and bastion remnants.",
    "Clay Ball": "Obtained by breaking clay blocks.",
    "Brick": "Obtained by smelting clay balls in a furnace.",
    "Lead": "Crafted from 4 slimeballs and 1 string. 4 slimeballs and 1 string convert into 2 leads.",
    "Fire Charge": "Crafted using 1 gunpowder, 1 blaze powder, and 1 coal or charcoal.",
    "Honeycomb": "Obtained from beehives or bee nests using shears.",
    "Phantom Membrane": "Dropped by phantoms when killed.",
    "Rabbit Hide": "Dropped by rabbits when killed.",
    "Arrow": "Crafted from 1 flint, 1 stick, and 1 feather. Conversion: 1 set to 4 arrows.",
    "Rotten Flesh": "Dropped by zombies and zombie variants.",
    "Apple": "Occasionally drops from oak and dark oak leaves when broken.",
    "Wheat": "Harvested from fully grown wheat crops.",
    "Carrot": "Harvested from carrot crops or dropped by zombies.",
    "Potato": "Harvested from potato crops or dropped by zombies.",
    "Beetroot": "Harvested from beetroot crops.",
    "Raw Beef": "Dropped by cows when killed.",
    "Raw Porkchop": "Dropped by pigs when killed.",
    "Raw Chicken": "Dropped by chickens when killed.",
    "Raw Mutton": "Dropped by sheep when killed.",
}

BLOCK_HINTS: dict[str, str] = {
    "TNT": "TNT blocks are crafted from 4 sand and 5 gunpowder.",
    "Glass": "Glass is made by smelting sand blocks. Glass can not be mined.",
    "Crafting Table": "Crafted from 4 wooden planks.",
    "Furnace": "Crafted from 8 cobblestone.",
    "Chest": "Crafted from 8 wooden planks.",
}

# Reasoner aliases that differ from the table keys
_ALIASES = {
    "planks": "Wooden Planks",
    "wood planks": "Wooden Planks",
    "oak planks": "Wooden Planks",
    "redstone": "Redstone Dust",
}

# Substrings that mark a missing-ingredient failure message
MISSING_INGREDIENT_MARKERS = (
    "don't have enough/correct ingredients",
    "missing ingredients",
    "not enough ingredients",
)

_LOOKUP: dict[str, str] = {}
for _table in (ITEM_HINTS, BLOCK_HINTS):
    for _key, _hint in _table.items():
        _LOOKUP.setdefault(_key.lower(), _hint)


def _candidates(name: str) -> list[str]:
    key = re.sub(r"[_\-\s]+", " ", name.strip().lower()).strip()
    keys = [key]
    if key.endswith("es"):
        keys.append(key[:-2])
    if key.endswith("s"):
        keys.append(key[:-1])
    return keys


def acquisition_hint(name: str) -> str | None:
    """Look up how to acquire ``name``.

    Matching ignores case, underscores and a plural suffix, so
    ``"iron_ingots"`` finds the ``"Iron Ingot"`` entry.
    """
    for key in _candidates(name):
        alias = _ALIASES.get(key)
        if alias is not None:
            return ITEM_HINTS.get(alias) or BLOCK_HINTS.get(alias)
        if key in _LOOKUP:
            return _LOOKUP[key]
    return None


def is_missing_ingredients_message(message: str) -> bool:
    """Whether a failure message reports missing ingredients."""
    lowered = message.lower()
    return any(marker in lowered for marker in MISSING_INGREDIENT_MARKERS)
