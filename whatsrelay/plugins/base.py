"""
plugins/base.py
---------------
BasePlugin class for command plugins.

1) Create a new module in ``whatsrelay/plugins/commands/``.
2) Subclass ``BasePlugin`` and decorate it with ``@plugin("mycmd")``.
3) Implement ``run_command(command, sender_id)`` returning the reply text.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from whatsrelay.core.settings import ReplyTexts
    from whatsrelay.core.transport import SessionTransport
    from whatsrelay.parsers import Command


@dataclass(frozen=True)
class PluginDeps:
    """Services a plugin may use.  Shared by every plugin instance."""

    transport: "SessionTransport"
    replies: "ReplyTexts"
    prefix: str


class BasePlugin(ABC):
    command_name: ClassVar[str] = ""
    help_text: ClassVar[str] = ""

    def __init__(self, deps: PluginDeps) -> None:
        self.deps = deps
        self.logger = logging.getLogger(type(self).__module__)

    @abstractmethod
    async def run_command(self, command: "Command", sender_id: str) -> str:
        """
        Main entrypoint for plugin execution.

        Args:
            command: The parsed command.
            sender_id: Normalized identifier of the sender.

        Returns:
            str: The reply to send back to the sender.
        """
