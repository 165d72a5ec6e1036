"""Observer package: HTTP and WebSocket view of running agents."""

from craftmind.observer.server import GoalPlanRequest, create_app

__all__ = ["GoalPlanRequest", "create_app"]
