"""
tests/plugins/test_commands.py - The built-in command plugins.
"""

import pytest

from tests.fakes import FakeTransport
from whatsrelay.core.settings import ReplyTexts
from whatsrelay.core.transport import ContactInfo
from whatsrelay.parsers import parse_command
from whatsrelay.plugins.base import PluginDeps
from whatsrelay.plugins.commands.echo import EchoPlugin
from whatsrelay.plugins.commands.help import HelpPlugin
from whatsrelay.plugins.commands.info import InfoPlugin
from whatsrelay.plugins.commands.ping import PingPlugin

SENDER = "15551234567"


@pytest.fixture
def deps(transport: FakeTransport) -> PluginDeps:
    return PluginDeps(transport=transport, replies=ReplyTexts(), prefix="!")


async def _run(plugin_cls: type, deps: PluginDeps, body: str) -> str:
    command = parse_command(body, "!", SENDER)
    assert command is not None
    return await plugin_cls(deps).run_command(command, SENDER)


@pytest.mark.asyncio
async def test_ping(deps: PluginDeps) -> None:
    assert await _run(PingPlugin, deps, "!ping") == "Pong! Bot is alive 🚀"


@pytest.mark.asyncio
async def test_help_lists_commands_with_prefix(deps: PluginDeps) -> None:
    reply = await _run(HelpPlugin, deps, "!help")
    assert reply.splitlines() == [
        "Available Commands:",
        "!help - Show this help",
        "!ping - Check bot status",
        "!info - Get contact info",
        "!echo [text] - Echo back your message",
    ]


@pytest.mark.asyncio
async def test_echo_joins_arguments(deps: PluginDeps) -> None:
    assert await _run(EchoPlugin, deps, "!echo Hello   World") == "Hello World"


@pytest.mark.asyncio
async def test_echo_without_arguments_prompts(deps: PluginDeps) -> None:
    assert await _run(EchoPlugin, deps, "!echo") == "Please provide text to echo!"


@pytest.mark.asyncio
async def test_info_personal(deps: PluginDeps) -> None:
    reply = await _run(InfoPlugin, deps, "!info")
    assert reply == "Contact Info:\nName: Alice\nNumber: 15551234567\nStatus: Personal"


@pytest.mark.asyncio
async def test_info_business_without_name(deps: PluginDeps, transport: FakeTransport) -> None:
    transport.contact = ContactInfo(display_name=None, is_business_account=True)
    reply = await _run(InfoPlugin, deps, "!info")
    assert "Name: N/A" in reply
    assert reply.endswith("Status: Business")


@pytest.mark.asyncio
async def test_info_propagates_transport_errors(
    deps: PluginDeps, transport: FakeTransport
) -> None:
    transport.should_fail = True
    with pytest.raises(ConnectionError):
        await _run(InfoPlugin, deps, "!info")
