"""Action collaborator wrappers."""

from craftmind.actions.retry import TimeoutRetryingActions, TimeoutRetryPolicy, is_timeout

__all__ = ["TimeoutRetryPolicy", "TimeoutRetryingActions", "is_timeout"]
