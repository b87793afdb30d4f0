"""
whatsrelay - relays one WhatsApp Web session to dashboard observers and
answers prefixed chat commands.

Re-exports public sub-modules so callers can ``from whatsrelay import logger_setup``.
"""

from __future__ import annotations

from importlib import import_module
from types import ModuleType

__all__: list[str] = []

for _name in ["core.logger_setup"]:
    mod: ModuleType = import_module(f".{_name}", __name__)
    simple_name = _name.split(".")[-1]
    globals()[simple_name] = mod
    __all__.append(simple_name)
