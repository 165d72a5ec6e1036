"""Parsing of reasoner answers used by the planner.

Covers three things:
- splitting a breakdown answer into substeps
- parsing a ``name(arg, arg)`` primitive-call answer
- projecting the inventory effect of item-producing calls
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

# Primitive names the planner may resolve a step to
PLANNER_CALL_NAMES = frozenset(
    {
        "mine",
        "craft",
        "place",
        "attack",
        "lootFromMob",
        "smelt",
        "plantCrop",
        "harvestCrop",
        "sortInventory",
        "placeChest",
        "storeItemInChest",
        "retrieveItemFromChest",
    }
)

_CALL_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*\((.*)\)\s*\.?\s*$", re.DOTALL)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


@dataclass(frozen=True)
class FuncCall:
    """A parsed primitive call with positional arguments."""

    name: str
    args: tuple[str | int, ...] = ()

    def __str__(self) -> str:
        return f"{self.name}({','.join(str(a) for a in self.args)})"

    def int_arg(self, index: int) -> int | None:
        """Return argument ``index`` as an int, or None if absent or non-numeric."""
        if index >= len(self.args):
            return None
        value = self.args[index]
        return value if isinstance(value, int) else None


def normalize_item(name: str) -> str:
    """Normalize an item name to snake_case, e.g. ``"Wood Planks"`` -> ``"wood_planks"``."""
    cleaned = name.strip().strip("\"'`").strip().lower()
    cleaned = re.sub(r"[\s\-]+", "_", cleaned)
    return re.sub(r"_+", "_", cleaned).strip("_")


def _split_top_level_commas(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")" and depth > 0:
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _clean_step(fragment: str) -> str:
    step = _BULLET_RE.sub("", fragment.strip())
    step = step.strip().strip("\"'").strip()
    return step.rstrip(".").strip()


def _json_steps(text: str) -> list[str] | None:
    body = text.strip()
    if not body.startswith(("{", "[")):
        return None
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None
    if isinstance(data, dict):
        data = data.get("steps")
    if isinstance(data, list):
        return [str(item) for item in data]
    return None


def split_steps(text: str) -> list[str]:
    """Split a breakdown answer into ordered substeps.

    Accepts a ``{"steps": [...]}`` JSON object (optionally fenced), a JSON
    list, or plain text where steps are separated by newlines or by commas
    outside parentheses. List bullets and empty fragments are dropped.
    """
    if not text or not text.strip():
        return []

    fenced = _FENCE_RE.search(text)
    body = fenced.group(1) if fenced else text

    json_steps = _json_steps(body)
    if json_steps is not None:
        fragments = json_steps
    else:
        fragments = []
        for line in body.splitlines():
            fragments.extend(_split_top_level_commas(line))

    steps = [_clean_step(f) for f in fragments]
    return [s for s in steps if s]


def _coerce_arg(raw: str) -> str | int:
    value = raw.strip().strip("\"'`").strip()
    if re.fullmatch(r"-?\d+", value):
        return int(value)
    return value


def parse_func_call(answer: str, allowed: frozenset[str] = PLANNER_CALL_NAMES) -> FuncCall | None:
    """Parse a primitive-call answer, or return None for "no match".

    Any answer mentioning ``null``, not shaped like ``name(args)``, or naming
    a primitive outside ``allowed`` is treated as no match. Item-like string
    arguments are normalized to snake_case.
    """
    text = answer.strip().strip("`").strip()
    if not text or "null" in text.lower():
        return None
    # Only the first line is considered; reasoners sometimes add commentary
    text = text.splitlines()[0].strip()

    match = _CALL_RE.match(text)
    if match is None:
        return None
    name, raw_args = match.group(1), match.group(2)
    if name not in allowed:
        return None
    if "(" in raw_args or ")" in raw_args:
        return None

    args: list[str | int] = []
    if raw_args.strip():
        for raw in raw_args.split(","):
            value = _coerce_arg(raw)
            if value == "":
                return None
            if isinstance(value, str) and value != "all":
                value = normalize_item(value)
            args.append(value)
    return FuncCall(name=name, args=tuple(args))


def produced_items(call: FuncCall) -> tuple[str, int] | None:
    """Return the ``(item, count)`` an acquire-shaped call produces, if any."""
    name = call.name
    if name == "mine" and len(call.args) >= 2:
        item, count = call.args[0], call.int_arg(1)
    elif name == "craft" and len(call.args) >= 1:
        item = call.args[0]
        count = call.int_arg(1) if len(call.args) >= 2 else 1
    elif name == "smelt" and len(call.args) >= 3:
        item, count = call.args[1], call.int_arg(2)
    elif name == "harvestCrop" and len(call.args) >= 2:
        item, count = call.args[0], call.int_arg(1)
    elif name == "retrieveItemFromChest" and len(call.args) >= 2:
        item, count = call.args[0], call.int_arg(1)
    elif name == "lootFromMob" and len(call.args) >= 3:
        item, count = call.args[1], call.int_arg(2)
    else:
        return None

    if not isinstance(item, str) or not item or count is None or count <= 0:
        return None
    return item, count


def apply_call_to_inventory(call: FuncCall, inventory: dict[str, int]) -> dict[str, int]:
    """Return a copy of ``inventory`` updated by the items ``call`` produces.

    Calls that do not produce items return an unchanged copy. Counts only
    ever increase.
    """
    updated = dict(inventory)
    produced = produced_items(call)
    if produced is not None:
        item, count = produced
        updated[item] = updated.get(item, 0) + count
    return updated
