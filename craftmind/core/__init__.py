"""Core agent logic package.

This package provides:
- CognitiveController: fast reflex loop and slow planning loop
- ControllerConfig: Configuration for the controller
- ToolDispatcher: bounded reasoner/tool-invocation loop
- ToolMenu: declared tools and argument validation
- MetricsCollector: Metrics collection for monitoring
- ControllerMetrics: Snapshot of collected metrics
"""

from craftmind.core.controller import (
    CognitiveController,
    ControllerConfig,
    ControllerState,
    PeriodicTask,
)
from craftmind.core.dispatch import FALLBACK_RESPONSE, DispatchConfig, ToolDispatcher
from craftmind.core.metrics import ControllerMetrics, MetricsCollector
from craftmind.core.tools import ToolMenu, ToolSpec, build_action_menu

__all__ = [
    "FALLBACK_RESPONSE",
    "CognitiveController",
    "ControllerConfig",
    "ControllerMetrics",
    "ControllerState",
    "DispatchConfig",
    "MetricsCollector",
    "PeriodicTask",
    "ToolDispatcher",
    "ToolMenu",
    "ToolSpec",
    "build_action_menu",
]
