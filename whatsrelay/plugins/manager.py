#!/usr/bin/env python
"""
plugins/manager.py
------------------
Command plugin registry with alias support.  Command modules register their
plugin class with the ``@plugin`` decorator; the dispatcher instantiates each
registered class once with its dependencies.
"""

from __future__ import annotations

import importlib
import logging
from typing import Callable, TypeVar, Union

from whatsrelay.plugins.base import BasePlugin
from whatsrelay.utils.module_discovery import iter_submodules

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=type[BasePlugin])

COMMANDS_PACKAGE = "whatsrelay.plugins.commands"

# Registry: key = canonical command, value = plugin class.
plugin_registry: dict[str, type[BasePlugin]] = {}
# Alias mapping: key = alias (normalized), value = canonical command.
alias_mapping: dict[str, str] = {}


def normalize_alias(alias: str) -> str:
    """
    Normalize an alias to a standardized format: lowercased and stripped.
    """
    return alias.strip().lower()


def plugin(commands: Union[str, list[str]], canonical: str | None = None) -> Callable[[P], P]:
    """
    Decorator to register a BasePlugin subclass under one or more aliases.

    Parameters:
      commands: Command alias or aliases.
      canonical: Primary command name (default is the first alias).
    """
    if isinstance(commands, str):
        commands = [commands]
    normalized = [normalize_alias(cmd) for cmd in commands]
    canonical_name = normalize_alias(canonical) if canonical else normalized[0]

    def decorator(cls: P) -> P:
        for alias in normalized:
            owner = alias_mapping.get(alias)
            if owner is not None and owner != canonical_name:
                raise ValueError(f"Duplicate alias '{alias}' already exists for '{owner}'.")
        cls.command_name = canonical_name
        plugin_registry[canonical_name] = cls
        for alias in normalized:
            alias_mapping[alias] = canonical_name
        return cls

    return decorator


def resolve(alias: str) -> str | None:
    """Return the canonical command for *alias*, or None if unknown."""
    return alias_mapping.get(normalize_alias(alias))


def load_plugins(package: str = COMMANDS_PACKAGE) -> list[str]:
    """Import every command module under *package* so its plugins register."""
    loaded: list[str] = []
    for module_name in iter_submodules(package):
        try:
            importlib.import_module(module_name)
            loaded.append(module_name)
        except Exception:
            logger.exception("Failed to load command module %s", module_name)
    logger.debug("Loaded command modules: %s", loaded)
    return loaded


__all__ = ["plugin", "plugin_registry", "alias_mapping", "resolve", "load_plugins"]
