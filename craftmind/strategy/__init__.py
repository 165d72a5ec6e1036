"""Goal decomposition, goal-stack management and crafting feasibility."""

from craftmind.strategy.calls import FuncCall, apply_call_to_inventory, parse_func_call, split_steps
from craftmind.strategy.goals import GoalManager, GoalState
from craftmind.strategy.planner import GoalTreeBuilder, build_context, build_goal_tree
from craftmind.strategy.recipes import (
    FeasibilityResult,
    RecipeBook,
    ShapedRecipe,
    ShapelessRecipe,
    adapt_recipe,
)

__all__ = [
    "FeasibilityResult",
    "FuncCall",
    "GoalManager",
    "GoalState",
    "GoalTreeBuilder",
    "RecipeBook",
    "ShapedRecipe",
    "ShapelessRecipe",
    "adapt_recipe",
    "apply_call_to_inventory",
    "build_context",
    "build_goal_tree",
    "parse_func_call",
    "split_steps",
]
