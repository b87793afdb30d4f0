"""
parsers/command_parser.py
-------------------------
Extract a command and its arguments from an inbound message body.

A body is a command only when it starts with the configured prefix (exact,
case-sensitive).  The first whitespace-delimited token after the prefix is
the command name (lower-cased); the remaining tokens are the arguments, case
preserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...]
    raw_text: str
    sender_id: str


def parse_command(body: Optional[str], prefix: str, sender_id: str) -> Optional[Command]:
    """
    Return the Command carried by *body*, or None for plain chat.

    ``"!"`` alone yields a Command with an empty name; the dispatcher treats
    it as an unknown command.
    """
    if not body or not prefix or not body.startswith(prefix):
        return None
    tokens = body[len(prefix):].split()
    name = tokens[0].lower() if tokens else ""
    return Command(name=name, args=tuple(tokens[1:]), raw_text=body, sender_id=sender_id)


# End of parsers/command_parser.py
