"""
core/dispatcher.py - Command Parser/Dispatcher.

Recognizes prefixed inbound messages, runs the matching plugin and sends its
reply back to the sender through the gateway.  Each inbound message is
handled in its own task so a handler waiting on the transport never holds up
other messages.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from whatsrelay.core import telemetry
from whatsrelay.core.events import CommandExecuted, MessageReceived
from whatsrelay.core.exceptions import DomainError
from whatsrelay.core.gateway import SendMessageGateway
from whatsrelay.core.hub import BroadcastHub
from whatsrelay.core.settings import ReplyTexts
from whatsrelay.core.transport import SessionTransport
from whatsrelay.parsers import Command, parse_command
from whatsrelay.plugins import manager
from whatsrelay.plugins.base import BasePlugin, PluginDeps

logger = logging.getLogger(__name__)

__all__ = ["CommandDispatcher"]


class CommandDispatcher:
    def __init__(
        self,
        gateway: SendMessageGateway,
        hub: BroadcastHub,
        transport: SessionTransport,
        replies: ReplyTexts,
        prefix: str = "!",
        plugins: Mapping[str, type[BasePlugin]] | None = None,
    ) -> None:
        self.gateway = gateway
        self.hub = hub
        self.replies = replies
        self.prefix = prefix
        if plugins is None:
            manager.load_plugins()
            plugins = manager.plugin_registry
        deps = PluginDeps(transport=transport, replies=replies, prefix=prefix)
        self._plugins: dict[str, BasePlugin] = {name: cls(deps) for name, cls in plugins.items()}
        self._aliases: dict[str, str] = {name: name for name in self._plugins}
        self._aliases.update(
            (alias, canonical)
            for alias, canonical in manager.alias_mapping.items()
            if canonical in self._plugins
        )
        self._tasks: set[asyncio.Task[CommandExecuted | None]] = set()

    @property
    def commands(self) -> list[str]:
        return sorted(self._plugins)

    def parse(self, event: MessageReceived) -> Command | None:
        return parse_command(event.body, self.prefix, event.sender)

    def submit(self, event: MessageReceived) -> asyncio.Task[CommandExecuted | None] | None:
        """Schedule :meth:`handle` for *event* if it carries a command."""
        if self.parse(event) is None:
            return None
        task = asyncio.get_running_loop().create_task(self.handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every handler scheduled so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def handle(self, event: MessageReceived) -> CommandExecuted | None:
        """
        Run the command in *event*, reply, then announce the execution.

        Returns the CommandExecuted event, or None when the message is plain
        chat.  Reply failures are logged; the execution is announced anyway.
        """
        command = self.parse(event)
        if command is None:
            return None

        canonical = self._aliases.get(command.name)
        plugin = self._plugins.get(canonical) if canonical else None
        reply = await self._run(plugin, command)

        try:
            if event.chat_id:
                await self.gateway.send_to_chat(event.chat_id, reply)
            else:
                await self.gateway.send_message(command.sender_id, reply)
        except DomainError as exc:
            logger.warning("Reply to %s for %r not sent: %s", command.sender_id, command.name, exc.detail)
        except Exception:
            logger.exception("Reply to %s for %r failed", command.sender_id, command.name)

        name = canonical or command.name
        executed = CommandExecuted(command=name, sender=command.sender_id)
        self.hub.broadcast(executed)
        telemetry.record_command(name if canonical else "unknown")
        logger.info("Command %r executed for %s", name, command.sender_id)
        return executed

    async def _run(self, plugin: BasePlugin | None, command: Command) -> str:
        if plugin is None:
            return self.replies.unknown.format(command=command.name, prefix=self.prefix)
        try:
            reply = await plugin.run_command(command, command.sender_id)
        except Exception:
            logger.exception("Command %r raised", command.name)
            return self.replies.internal_error
        return reply or self.replies.internal_error
