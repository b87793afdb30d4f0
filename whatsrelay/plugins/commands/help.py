#!/usr/bin/env python
"""
plugins/commands/help.py
------------------------
Summary: Help command plugin. Replies with the static command list.
Usage:
  !help
"""

from whatsrelay.parsers import Command
from whatsrelay.plugins.base import BasePlugin
from whatsrelay.plugins.manager import plugin


@plugin("help")
class HelpPlugin(BasePlugin):
    help_text = "Show this help"

    async def run_command(self, command: Command, sender_id: str) -> str:
        return self.deps.replies.help.format(prefix=self.deps.prefix)


# End of plugins/commands/help.py
