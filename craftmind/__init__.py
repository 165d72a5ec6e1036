"""craftmind: cognitive controller, goal planner and tool-dispatch loop for Minecraft agents."""

__version__ = "0.1.0"
