"""
Session transport implementations and the loader used by the container.
"""

from __future__ import annotations

import importlib
from typing import Any

from whatsrelay.core.transport import SessionTransport

__all__ = ["load_transport"]


def load_transport(path: str, **kwargs: Any) -> SessionTransport:
    """Instantiate the transport named by *path* (``"package.module:ClassName"``)."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"transport path must look like 'module:Class', got {path!r}")
    cls = getattr(importlib.import_module(module_name), attr)
    if not (isinstance(cls, type) and issubclass(cls, SessionTransport)):
        raise TypeError(f"{path} is not a SessionTransport subclass")
    return cls(**kwargs)
