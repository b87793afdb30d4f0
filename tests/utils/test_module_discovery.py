import pytest

from whatsrelay.utils.module_discovery import iter_submodules


def test_iter_submodules_lists_command_modules_sorted() -> None:
    modules = list(iter_submodules("whatsrelay.plugins.commands"))
    assert modules == sorted(modules)
    assert {
        "whatsrelay.plugins.commands.echo",
        "whatsrelay.plugins.commands.help",
        "whatsrelay.plugins.commands.info",
        "whatsrelay.plugins.commands.ping",
    } <= set(modules)
    assert not any(m.endswith("__init__") for m in modules)


def test_iter_submodules_walks_nested_packages() -> None:
    modules = list(iter_submodules("whatsrelay.core"))
    assert "whatsrelay.core.hub" in modules
    assert "whatsrelay.core.__main__" not in modules
    assert "whatsrelay.core.__main__" in list(
        iter_submodules("whatsrelay.core", include_private=True)
    )


def test_iter_submodules_requires_a_package() -> None:
    with pytest.raises(AttributeError):
        list(iter_submodules("whatsrelay.plugins.manager"))
