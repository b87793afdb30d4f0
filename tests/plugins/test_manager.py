"""
tests/plugins/test_manager.py - Plugin registration and discovery.
"""

from collections.abc import Iterator

import pytest

from whatsrelay.parsers import Command
from whatsrelay.plugins import manager
from whatsrelay.plugins.base import BasePlugin


@pytest.fixture
def isolated_registry(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(manager, "plugin_registry", dict(manager.plugin_registry))
    monkeypatch.setattr(manager, "alias_mapping", dict(manager.alias_mapping))
    yield


def test_load_plugins_registers_builtin_commands() -> None:
    loaded = manager.load_plugins()
    assert "whatsrelay.plugins.commands.ping" in loaded
    for name in ("help", "ping", "info", "echo"):
        assert manager.resolve(name) == name
        assert name in manager.plugin_registry


@pytest.mark.usefixtures("isolated_registry")
def test_plugin_decorator_registers_aliases() -> None:
    @manager.plugin(["Status", "st"])
    class StatusPlugin(BasePlugin):
        async def run_command(self, command: Command, sender_id: str) -> str:
            return "ok"

    assert StatusPlugin.command_name == "status"
    assert manager.resolve(" ST ") == "status"
    assert manager.plugin_registry["status"] is StatusPlugin


@pytest.mark.usefixtures("isolated_registry")
def test_duplicate_alias_rejected() -> None:
    manager.load_plugins()
    with pytest.raises(ValueError, match="Duplicate alias"):

        @manager.plugin("ping", canonical="pong")
        class Other(BasePlugin):
            async def run_command(self, command: Command, sender_id: str) -> str:
                return ""


def test_resolve_unknown() -> None:
    assert manager.resolve("definitely-not-a-command") is None
