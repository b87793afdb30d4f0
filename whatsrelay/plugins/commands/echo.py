#!/usr/bin/env python
"""
plugins/commands/echo.py
------------------------
Summary: Echo command plugin. Repeats the arguments back to the sender.
Usage:
  !echo [text]
"""

from whatsrelay.parsers import Command
from whatsrelay.plugins.base import BasePlugin
from whatsrelay.plugins.manager import plugin


@plugin("echo")
class EchoPlugin(BasePlugin):
    help_text = "Echo back your message"

    async def run_command(self, command: Command, sender_id: str) -> str:
        if not command.args:
            return self.deps.replies.echo_prompt
        return " ".join(command.args)


# End of plugins/commands/echo.py
