"""
core/events.py - The closed set of normalized session events.

Every event the relay handles internally is one of the frozen dataclasses
below.  Raw transport payloads never travel past the normalizer; observers
receive ``(event_name, to_payload())`` pairs built from these values.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Union

__all__ = [
    "AckLevel",
    "Direction",
    "QrIssued",
    "StatusChanged",
    "MessageReceived",
    "MessageSent",
    "AckUpdated",
    "CommandExecuted",
    "NormalizedEvent",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    # Millisecond precision with a trailing "Z", the format dashboards parse.
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AckLevel(enum.IntEnum):
    """Delivery-confirmation ordinal for an outgoing message."""

    PENDING = 0
    SENT = 1
    DELIVERED = 2
    READ = 3


class Direction(str, enum.Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


@dataclass(frozen=True)
class QrIssued:
    event_name: ClassVar[str] = "qr"

    secret: str

    def to_payload(self) -> dict[str, Any]:
        return {"qr": self.secret}


@dataclass(frozen=True)
class StatusChanged:
    event_name: ClassVar[str] = "status"

    ready: bool
    message: str

    def to_payload(self) -> dict[str, Any]:
        return {"ready": self.ready, "message": self.message}


@dataclass(frozen=True)
class MessageReceived:
    """An inbound message.

    ``chat_id`` is the transport chat identifier, suffix included
    (``"1203...@g.us"`` for groups); replies are routed to it.  Empty when the
    transport did not supply one.
    """

    event_name: ClassVar[str] = "new_message"

    sender: str
    body: str
    timestamp: datetime = field(default_factory=utcnow)
    chat_id: str = ""
    direction: Direction = field(default=Direction.INCOMING, init=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "message": self.body,
            "timestamp": _iso(self.timestamp),
            "type": self.direction.value,
        }


@dataclass(frozen=True)
class MessageSent:
    """An outgoing message the transport accepted.

    ``sender`` holds the peer the message was addressed to; the dashboard
    renders both directions under the same ``from`` column.
    """

    event_name: ClassVar[str] = "new_message"

    sender: str
    body: str
    message_id: str
    timestamp: datetime = field(default_factory=utcnow)
    direction: Direction = field(default=Direction.OUTGOING, init=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "message": self.body,
            "timestamp": _iso(self.timestamp),
            "type": self.direction.value,
            "id": self.message_id,
        }


@dataclass(frozen=True)
class AckUpdated:
    event_name: ClassVar[str] = "message_ack"

    message_id: str
    ack_level: AckLevel

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.message_id, "ack": int(self.ack_level)}


@dataclass(frozen=True)
class CommandExecuted:
    event_name: ClassVar[str] = "command_executed"

    command: str
    sender: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_payload(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "phoneNumber": self.sender,
            "timestamp": _iso(self.timestamp),
        }


NormalizedEvent = Union[
    QrIssued, StatusChanged, MessageReceived, MessageSent, AckUpdated, CommandExecuted
]
