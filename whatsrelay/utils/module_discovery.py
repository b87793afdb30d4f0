"""Find the command modules that live under a package.

Used by the plugin manager: every module it yields is imported once so the
``@plugin`` decorators in it run.
"""

from __future__ import annotations

import pkgutil
from collections.abc import Iterator
from importlib import import_module

__all__ = ["iter_submodules"]


def iter_submodules(pkg: str, *, include_private: bool = False) -> Iterator[str]:
    """Yield the dotted names of all leaf modules below *pkg*, sorted.

    Sub-packages are walked but not yielded themselves.  Modules whose last
    name part starts with ``_`` are skipped unless *include_private* is set.
    """
    root = import_module(pkg)
    found: list[str] = []
    for info in pkgutil.walk_packages(root.__path__, prefix=f"{pkg}."):
        if info.ispkg:
            continue
        if not include_private and info.name.rsplit(".", 1)[-1].startswith("_"):
            continue
        found.append(info.name)
    yield from sorted(found)
