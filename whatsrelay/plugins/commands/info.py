#!/usr/bin/env python
"""
plugins/commands/info.py
------------------------
Summary: Info command plugin. Reports what the transport knows about the sender.
Usage:
  !info
"""

from whatsrelay.parsers import Command
from whatsrelay.plugins.base import BasePlugin
from whatsrelay.plugins.manager import plugin


@plugin("info")
class InfoPlugin(BasePlugin):
    """
    Display the sender's contact information.

    Transport failures propagate to the dispatcher, which answers with the
    generic internal-error reply.
    """

    help_text = "Get contact info"

    async def run_command(self, command: Command, sender_id: str) -> str:
        contact = await self.deps.transport.fetch_contact_info(sender_id)
        return self.deps.replies.info.format(
            name=contact.display_name or "N/A",
            number=sender_id,
            status="Business" if contact.is_business_account else "Personal",
        )


# End of plugins/commands/info.py
