"""Shared helper utilities for CLI commands."""

from __future__ import annotations

import json
import logging
import os

from craftmind.cli.options import LogFormat
from craftmind.config.loader import LLMConfig
from craftmind.llm.client import API_KEY_ENV
from craftmind.models.plan import StepNode

logger = logging.getLogger(__name__)

_PLACEHOLDER_API_KEYS = frozenset(
    {
        "your_openai_api_key_here",
        "your_anthropic_api_key_here",
        "your_api_key_here",
        "changeme",
        "replace_me",
    }
)


class _JSONLogFormatter(logging.Formatter):
    """Compact JSON formatter for machine-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


def _configure_logging(
    level: str = "INFO",
    log_format: str = LogFormat.READABLE.value,
    quiet_uvicorn: bool = True,
    log_file: str | None = None,
) -> None:
    """Configure process-wide logging."""
    resolved_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, "_craftmind_handler", False)]

    if log_format == LogFormat.JSON.value:
        formatter: logging.Formatter = _JSONLogFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler._craftmind_handler = True  # type: ignore[attr-defined]
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(resolved_level)

    if quiet_uvicorn:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    # HTTP transport logs are noisy at INFO during reasoner calls.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


def _is_placeholder_api_key(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _PLACEHOLDER_API_KEYS:
        return True
    return lowered.startswith("your_") and lowered.endswith("_here")


def _read_provider_api_key(provider: str) -> str | None:
    """Read a provider API key from the environment, ignoring blanks and placeholders."""
    env_key = API_KEY_ENV[provider]
    raw = os.environ.get(env_key)
    if raw is None:
        return None

    cleaned = raw.strip().strip('"').strip("'")
    if not cleaned:
        logger.warning(f"{env_key} is set but blank; ignoring it.")
        return None
    if _is_placeholder_api_key(cleaned):
        logger.warning(f"{env_key} appears to be a placeholder value; ignoring it.")
        return None
    return cleaned


def _resolve_llm_settings(settings: LLMConfig) -> LLMConfig:
    """Switch to the other provider when only its API key is available."""
    provider = settings.provider
    if _read_provider_api_key(provider):
        return settings

    fallback = "openai" if provider == "anthropic" else "anthropic"
    if _read_provider_api_key(fallback):
        logger.warning(
            f"Configured provider '{provider}' is missing {API_KEY_ENV[provider]}; "
            f"falling back to '{fallback}'."
        )
        return settings.model_copy(update={"provider": fallback, "model": None})

    logger.warning(
        f"No LLM API key found ({API_KEY_ENV['anthropic']} or {API_KEY_ENV['openai']}). "
        "Reasoner calls will fail."
    )
    return settings


def _render_tree(nodes: list[StepNode]) -> str:
    """Render a flat node list as an indented tree, children in creation order."""
    children: dict[str | None, list[StepNode]] = {}
    for node in nodes:
        children.setdefault(node.parent_id, []).append(node)

    lines: list[str] = []

    def walk(node: StepNode) -> None:
        suffix = f"  ->  {node.func_call}" if node.func_call else ""
        lines.append(f"{'  ' * node.level}- {node.step}{suffix}")
        for child in sorted(children.get(node.id, []), key=lambda n: n.step_number):
            walk(child)

    for root in children.get(None, []):
        walk(root)
    return "\n".join(lines)
