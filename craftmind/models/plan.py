"""Task-tree node model produced by the goal decomposition engine."""

from __future__ import annotations

import uuid
from enum import StrEnum

from pydantic import BaseModel, Field


class PlanMode(StrEnum):
    """Frontier traversal order."""

    BFS = "bfs"
    DFS = "dfs"


class StepNode(BaseModel):
    """One node of an incrementally built goal tree.

    A node with ``func_call`` set is a leaf: it resolved to exactly one
    primitive call and is never expanded. Nodes are frozen; the planner
    builds new nodes with copied inventories instead of mutating old ones.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    parent_id: str | None = Field(default=None, description="None only for the root")
    step: str = Field(..., description="Text of this step")
    func_call: str | None = Field(default=None, description="Resolved primitive call")
    level: int = Field(default=0, ge=0, description="Depth in the tree, root is 0")
    step_number: int = Field(default=0, ge=0, description="Global creation order")
    projected_inventory: dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_root(self) -> bool:
        """Whether this node is the tree root."""
        return self.parent_id is None

    @property
    def is_leaf(self) -> bool:
        """Whether this node carries a resolved primitive call."""
        return self.func_call is not None
