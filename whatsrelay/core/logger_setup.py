"""
core/logger_setup.py - Logging configuration for the relay process.

``setup_logging()`` installs a rich console handler by default.  Two
environment variables adjust it without code changes:

    LOG_LEVEL   root level (DEBUG, INFO, WARNING, ...)
    LOG_FORMAT  "rich" (default) or "plain" for one-line records, e.g. when
                stdout is collected by a container runtime
"""

import collections
import copy
import logging
import logging.config
import os
import warnings
from typing import Any

__all__ = ["DEFAULT_LOGGING_CONFIG", "merge_dicts", "setup_logging"]


def merge_dicts(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge *overrides* into *base* and return *base*.

    Nested dicts merge key by key.  Any other value replaces the old one;
    a type change (say ``"INFO"`` to ``10``) is allowed but warned about.
    """
    for key, value in overrides.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merge_dicts(current, value)
            continue
        if key in base and not isinstance(current, type(value)):
            warnings.warn(
                f"Type mismatch for key '{key}': "
                f"{type(current).__name__} vs {type(value).__name__}. "
                "Using override value."
            )
        base[key] = value
    return base


DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        # RichHandler draws time and level itself; only datefmt is used.
        "rich": {"datefmt": "%Y-%m-%d %H:%M:%S"},
        "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "filters": {"dedupe": {"()": "whatsrelay.core.logger_setup._DuplicateFilter"}},
    "handlers": {
        "rich": {
            "class": "rich.logging.RichHandler",
            "markup": False,
            "rich_tracebacks": True,
            "show_path": False,
            "formatter": "rich",
            "filters": ["dedupe"],
        },
    },
    "loggers": {
        "aiohttp.access": {"level": "WARNING"},
    },
    "root": {
        "handlers": ["rich"],
        "level": "INFO",
    },
}

_PLAIN_HANDLER: dict[str, Any] = {
    "class": "logging.StreamHandler",
    "formatter": "plain",
    "filters": ["dedupe"],
}


class _DuplicateFilter(logging.Filter):
    """Drop a record whose (message, traceback) was seen among the last *window*."""

    def __init__(self, window: int = 20) -> None:
        super().__init__()
        self._recent: collections.deque[tuple[str, str]] = collections.deque(maxlen=window)

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        key = (record.getMessage(), getattr(record, "exc_text", "") or "")
        if key in self._recent:
            return False
        self._recent.append(key)
        return True


def _apply_environment(config: dict[str, Any]) -> None:
    level = os.getenv("LOG_LEVEL")
    if level:
        config.setdefault("root", {})["level"] = level.upper()
    if os.getenv("LOG_FORMAT", "rich").lower() == "plain":
        config["handlers"] = {"plain": copy.deepcopy(_PLAIN_HANDLER)}
        config.setdefault("root", {})["handlers"] = ["plain"]


def _ensure_handlers(config: dict[str, Any]) -> None:
    if config.get("handlers") and config.get("root", {}).get("handlers"):
        return
    warnings.warn("Logging configuration missing handlers; using fallback console handler.")
    config["handlers"] = {"console": {"class": "logging.StreamHandler", "formatter": "plain"}}
    config.setdefault("root", {})["handlers"] = ["console"]


_CONFIGURED: bool = False


def setup_logging(config_overrides: dict[str, Any] | None = None, *, force: bool = False) -> None:
    """
    Configure logging once per process.

    Args:
        config_overrides: dictConfig fragments merged over the defaults, after
            the environment has been applied.
        force: reconfigure even when logging was already set up (tests).
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    config = copy.deepcopy(DEFAULT_LOGGING_CONFIG)
    _apply_environment(config)
    if config_overrides:
        merge_dicts(config, config_overrides)
    _ensure_handlers(config)

    logging.config.dictConfig(config)
    _CONFIGURED = True


# End of core/logger_setup.py
