"""Typed recipes and crafting feasibility search.

Raw recipe records from the game data come in two shapes: shaped recipes
with a grid (``inShape``) and shapeless recipes with an ingredient list.
:func:`adapt_recipe` turns a raw record into one of the typed models below;
nothing past this module sees untyped records.

:meth:`RecipeBook.check_feasibility` answers "can I make N of X from this
inventory?" with a depth-first search over the ingredient graph. A visiting
set detects cycles and the chosen recipe per item is memoized.

Example:
    >>> book = RecipeBook.from_raw([
    ...     {"result": {"name": "stick", "count": 4}, "inShape": [["planks"], ["planks"]]},
    ...     {"result": {"name": "planks", "count": 4}, "ingredients": ["log"]},
    ... ])
    >>> book.check_feasibility("stick", 4, {"log": 1}).feasible
    True
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, Field, TypeAdapter

from craftmind.strategy.calls import normalize_item

logger = logging.getLogger(__name__)


class ShapedRecipe(BaseModel):
    """A recipe whose ingredients are arranged on a grid."""

    kind: Literal["shaped"] = "shaped"
    result: str
    result_count: int = Field(default=1, ge=1)
    shape: list[list[str | None]] = Field(..., description="Rows of ingredient names, None for empty")

    model_config = {"frozen": True}

    def ingredient_counts(self) -> dict[str, int]:
        """Count every non-empty grid cell by ingredient."""
        return dict(Counter(cell for row in self.shape for cell in row if cell))


class ShapelessRecipe(BaseModel):
    """A recipe whose ingredients can be placed anywhere."""

    kind: Literal["shapeless"] = "shapeless"
    result: str
    result_count: int = Field(default=1, ge=1)
    ingredients: list[str]

    model_config = {"frozen": True}

    def ingredient_counts(self) -> dict[str, int]:
        return dict(Counter(self.ingredients))


Recipe = Annotated[ShapedRecipe | ShapelessRecipe, Field(discriminator="kind")]

_recipe_adapter: TypeAdapter[ShapedRecipe | ShapelessRecipe] = TypeAdapter(Recipe)


def _ingredient_name(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = raw.get("name")
        if raw is None:
            return None
    name = normalize_item(str(raw))
    return name or None


def adapt_recipe(raw: dict[str, Any]) -> ShapedRecipe | ShapelessRecipe:
    """Convert a raw recipe record into a typed recipe.

    Accepted shapes::

        {"result": {"name": ..., "count": ...}, "inShape": [[...], ...]}
        {"result": {"name": ..., "count": ...}, "ingredients": [...]}

    Ingredients may be plain names or ``{"name": ...}`` objects.

    Raises:
        ValueError: If the record matches neither shape.
    """
    result = raw.get("result")
    if isinstance(result, dict):
        result_name = result.get("name")
        result_count = result.get("count", 1)
    else:
        result_name, result_count = result, raw.get("count", 1)
    if not result_name:
        raise ValueError(f"Recipe record has no result: {raw!r}")

    if "inShape" in raw:
        shape = [[_ingredient_name(cell) for cell in row] for row in raw["inShape"]]
        data: dict[str, Any] = {"kind": "shaped", "shape": shape}
    elif "ingredients" in raw:
        ingredients = [n for n in (_ingredient_name(i) for i in raw["ingredients"]) if n]
        data = {"kind": "shapeless", "ingredients": ingredients}
    else:
        raise ValueError(f"Recipe record is neither shaped nor shapeless: {raw!r}")

    data["result"] = normalize_item(str(result_name))
    data["result_count"] = int(result_count)
    return _recipe_adapter.validate_python(data)


class FeasibilityResult(BaseModel):
    """Outcome of a feasibility search.

    Attributes:
        feasible: Whether the target can be made from the inventory.
        missing: Base items still needed, with counts.
        craft_order: Crafts to perform, dependencies first, as (item, times).
    """

    item: str
    count: int
    feasible: bool
    missing: dict[str, int] = Field(default_factory=dict)
    craft_order: list[tuple[str, int]] = Field(default_factory=list)

    model_config = {"frozen": True}

    def summary(self) -> str:
        """One-line description for diagnostics."""
        if self.feasible:
            steps = ", ".join(f"{item} x{times}" for item, times in self.craft_order)
            return f"{self.item}({self.count}) is craftable" + (f" via: {steps}" if steps else "")
        missing = ", ".join(f"{item}({count})" for item, count in self.missing.items())
        return f"{self.item}({self.count}) needs base materials: {missing}"


class RecipeBook:
    """Recipes indexed by result item."""

    def __init__(self, recipes: list[ShapedRecipe | ShapelessRecipe] | None = None) -> None:
        self._recipes: dict[str, list[ShapedRecipe | ShapelessRecipe]] = {}
        self._choice_cache: dict[
            tuple[str, frozenset[str]], ShapedRecipe | ShapelessRecipe | None
        ] = {}
        for recipe in recipes or []:
            self.add(recipe)

    @classmethod
    def from_raw(cls, records: list[dict[str, Any]]) -> RecipeBook:
        """Build a book from raw records, skipping ones that cannot be adapted."""
        recipes = []
        for record in records:
            try:
                recipes.append(adapt_recipe(record))
            except ValueError as e:
                logger.warning(f"Skipping recipe record: {e}")
        return cls(recipes)

    @classmethod
    def from_file(cls, path: str | Path) -> RecipeBook:
        """Load raw records from a JSON or YAML file.

        The file holds either a list of records or a mapping from item name
        to a list of records.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file holds neither layout.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Recipe file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or []

        if isinstance(data, dict):
            records = [record for group in data.values() for record in group]
        elif isinstance(data, list):
            records = data
        else:
            raise ValueError(f"Recipe file must hold a list or a mapping: {path}")
        book = cls.from_raw(records)
        logger.info(f"Loaded {len(book)} recipes from {path}")
        return book

    def add(self, recipe: ShapedRecipe | ShapelessRecipe) -> None:
        self._recipes.setdefault(recipe.result, []).append(recipe)
        self._choice_cache.clear()

    def recipes_for(self, item: str) -> list[ShapedRecipe | ShapelessRecipe]:
        return list(self._recipes.get(normalize_item(item), []))

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and normalize_item(item) in self._recipes

    def __len__(self) -> int:
        return sum(len(r) for r in self._recipes.values())

    def check_feasibility(
        self, item: str, count: int, inventory: dict[str, int]
    ) -> FeasibilityResult:
        """Check whether ``count`` of ``item`` can be made from ``inventory``.

        The caller's inventory is never modified.
        """
        target = normalize_item(item)
        working = {normalize_item(k): v for k, v in inventory.items()}
        missing: dict[str, int] = {}
        craft_order: list[tuple[str, int]] = []

        self._resolve(target, count, working, missing, craft_order, frozenset())
        return FeasibilityResult(
            item=target,
            count=count,
            feasible=not missing,
            missing=missing,
            craft_order=craft_order,
        )

    def _choose_recipe(
        self, item: str, visiting: frozenset[str]
    ) -> ShapedRecipe | ShapelessRecipe | None:
        """Pick the first recipe for ``item`` with no ingredient on the current path."""
        key = (item, visiting)
        if key in self._choice_cache:
            return self._choice_cache[key]
        path = visiting | {item}
        chosen = None
        for recipe in self._recipes.get(item, []):
            if not any(ingredient in path for ingredient in recipe.ingredient_counts()):
                chosen = recipe
                break
        self._choice_cache[key] = chosen
        return chosen

    def _resolve(
        self,
        item: str,
        needed: int,
        inventory: dict[str, int],
        missing: dict[str, int],
        craft_order: list[tuple[str, int]],
        visiting: frozenset[str],
    ) -> None:
        have = inventory.get(item, 0)
        used = min(have, needed)
        inventory[item] = have - used
        remaining = needed - used
        if remaining == 0:
            return

        recipe = None if item in visiting else self._choose_recipe(item, visiting)
        if recipe is None:
            missing[item] = missing.get(item, 0) + remaining
            return

        times = math.ceil(remaining / recipe.result_count)
        for ingredient, per_craft in recipe.ingredient_counts().items():
            self._resolve(
                ingredient,
                per_craft * times,
                inventory,
                missing,
                craft_order,
                visiting | {item},
            )
        surplus = times * recipe.result_count - remaining
        if surplus:
            inventory[item] = inventory.get(item, 0) + surplus
        craft_order.append((item, times))
