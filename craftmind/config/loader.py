"""Configuration loader for craftmind.

Loads configuration from YAML files and environment variables.
Environment variables override YAML values using the CRAFTMIND_ prefix.
Nested keys use double underscores: CRAFTMIND_AGENT__SLOW_LOOP_SECONDS=3
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from craftmind.models.plan import PlanMode

logger = logging.getLogger(__name__)

ENV_PREFIX = "CRAFTMIND_"


class AgentConfig(BaseModel):
    """Controller settings."""

    name: str = Field(default="craftmind", min_length=1)
    fast_loop_seconds: float = Field(default=1.0, gt=0.0, le=60.0)
    slow_loop_seconds: float = Field(default=5.0, gt=0.0, le=600.0)
    threat_distance: float = Field(default=10.0, ge=0.0, le=128.0)
    hostile_mobs: list[str] = Field(default_factory=lambda: ["zombie", "skeleton", "spider", "creeper"])
    allow_overlap: bool = Field(default=False, description="Allow overlapping ticks of the same loop")
    personality: str | None = Field(default=None, description="Personality used for the speech filter")


class PlannerConfig(BaseModel):
    """Goal decomposition settings."""

    default_mode: PlanMode = Field(default=PlanMode.BFS)


class DispatchSettings(BaseModel):
    """Tool-dispatch loop settings."""

    round_limit: int = Field(default=20, ge=1, le=200)
    include_state_diff: bool = Field(default=True)
    recipes_file: str | None = Field(default=None, description="JSON or YAML recipe records for craft hints")


class MemoryConfig(BaseModel):
    """Memory subsystem settings."""

    short_term_capacity: int = Field(default=10, ge=1, le=1000)
    consolidation_round_limit: int = Field(default=5, ge=1, le=50)
    consolidation_recent_events: int = Field(default=10, ge=1, le=500)


class ActionsConfig(BaseModel):
    """Action collaborator settings."""

    pathfind_retries: int = Field(default=2, ge=0, le=10)
    pathfind_backoff_seconds: float = Field(default=1.0, ge=0.0, le=60.0)


class LLMConfig(BaseModel):
    """LLM provider settings."""

    provider: str = Field(default="openai", pattern="^(anthropic|openai)$")
    model: str | None = Field(default=None)
    max_tokens: int = Field(default=1024, ge=1, le=100000)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_retries: int = Field(default=3, ge=1, le=10)
    retry_delay: float = Field(default=1.0, ge=0.0, le=60.0)
    min_interval_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    max_length: int = Field(default=100000, ge=1)
    enabled: bool = Field(default=True)


class ObserverConfig(BaseModel):
    """Observer/web API settings."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)
    state_push_seconds: float = Field(default=1.0, gt=0.0, le=60.0)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    json_logs: bool = Field(default=False)
    file: str | None = Field(default=None)


class Config(BaseModel):
    """Root configuration model."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    planner: PlannerConfig = Field(default_factory=PlannerConfig)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    actions: ActionsConfig = Field(default_factory=ActionsConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    observer: ObserverConfig = Field(default_factory=ObserverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _get_env_value(key: str) -> str | None:
    """Get environment variable with CRAFTMIND_ prefix."""
    return os.environ.get(f"{ENV_PREFIX}{key.upper()}")


def _coerce(env_value: str, current: Any) -> Any:
    """Convert an environment string to the type of the value it replaces."""
    if isinstance(current, bool):
        return env_value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(env_value)
    if isinstance(current, float):
        return float(env_value)
    if isinstance(current, list):
        return [item.strip() for item in env_value.split(",") if item.strip()]
    return env_value


def _apply_env_overrides(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Apply environment variable overrides to config data.

    Environment variables use CRAFTMIND_ prefix with double underscores for nesting.
    Example: CRAFTMIND_DISPATCH__ROUND_LIMIT=5 sets dispatch.round_limit to 5
    """
    result = data.copy()

    for key, value in result.items():
        env_key = f"{prefix}__{key}" if prefix else key

        if isinstance(value, dict):
            result[key] = _apply_env_overrides(value, env_key)
        else:
            env_value = _get_env_value(env_key)
            if env_value is not None:
                result[key] = _coerce(env_value, value)

    return result


def _default_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "configs" / "default.yaml"


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Every key of the full configuration can be overridden from the
    environment, including keys the YAML file leaves out.

    Args:
        config_path: Path to YAML config file. If None, uses
            configs/default.yaml when present, otherwise built-in defaults.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist.
        ValidationError: If config values are invalid.
    """
    if config_path is None:
        path = _default_config_path()
        explicit = False
    else:
        path = Path(config_path)
        explicit = True

    file_data: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            file_data = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {path}")
    else:
        logger.debug(f"No config file at {path}; using defaults")

    data = _deep_merge(Config().model_dump(mode="json"), file_data)
    data = _apply_env_overrides(data)

    return Config.model_validate(data)


def get_default_config() -> Config:
    """Get default configuration without loading from file."""
    return Config()


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep merge ``updates`` into a copy of ``base``."""
    result = base.copy()

    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


# Type for config change callbacks
ConfigCallback = Callable[[Config], None]


class ConfigManager:
    """Manages configuration with runtime update support.

    Example:
        >>> manager = ConfigManager(load_config())
        >>> manager.subscribe(lambda c: print(c.dispatch.round_limit))
        >>> manager.update({"dispatch": {"round_limit": 5}})
        5
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self._subscribers: list[ConfigCallback] = []

    @property
    def config(self) -> Config:
        """Get the current configuration."""
        return self._config

    def subscribe(self, callback: ConfigCallback) -> None:
        """Call ``callback`` with the new config whenever it changes."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: ConfigCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def update(self, updates: dict[str, Any]) -> Config:
        """Update configuration at runtime.

        Merges updates into current config, validates, and notifies subscribers.

        Args:
            updates: Dictionary of updates. Can be nested.
                Example: {"agent": {"slow_loop_seconds": 3}}

        Returns:
            Updated Config object.

        Raises:
            ValidationError: If updates result in invalid configuration.
        """
        merged = _deep_merge(self._config.model_dump(mode="json"), updates)
        self._config = Config.model_validate(merged)
        self._notify()
        return self._config

    def reset(self) -> Config:
        """Reset configuration to defaults."""
        self._config = Config()
        self._notify()
        return self._config

    def _notify(self) -> None:
        for subscriber in self._subscribers:
            try:
                subscriber(self._config)
            except Exception as e:
                logger.warning(f"Config subscriber error: {e}")
