"""
plugins/commands/ping.py
------------------------
Summary: Liveness check.
Usage:
  !ping
"""

from whatsrelay.parsers import Command
from whatsrelay.plugins.base import BasePlugin
from whatsrelay.plugins.manager import plugin


@plugin("ping")
class PingPlugin(BasePlugin):
    help_text = "Check bot status"

    async def run_command(self, command: Command, sender_id: str) -> str:
        return self.deps.replies.pong
