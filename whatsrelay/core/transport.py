"""
core/transport.py - Contract between the relay and a messaging-session transport.

The transport owns authentication, network I/O and QR generation.  It reports
lifecycle and message events through a :class:`TransportEvents` sink and
serves the few requests the relay makes (send, contact lookup, chat listing).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol

__all__ = ["ContactInfo", "ChatSummary", "TransportEvents", "SessionTransport"]


@dataclass(frozen=True)
class ContactInfo:
    display_name: str | None
    is_business_account: bool = False


@dataclass(frozen=True)
class ChatSummary:
    id: str
    display_name: str
    is_group: bool = False
    unread_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.display_name,
            "isGroup": self.is_group,
            "unreadCount": self.unread_count,
        }


class TransportEvents(Protocol):
    """Callbacks a transport invokes.  Safe to call from any thread."""

    def on_qr(self, secret: str) -> None: ...

    def on_ready(self) -> None: ...

    def on_disconnected(self, reason: str) -> None: ...

    def on_message(self, raw_message: Any) -> None: ...

    def on_ack_update(self, message: Any, ack_level: Any) -> None: ...


class SessionTransport(ABC):
    """
    Abstract base class for account-session transports.
    """

    @abstractmethod
    async def start(self, events: TransportEvents) -> None:
        """Connect and begin reporting events to *events*."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect and release resources.  Must be idempotent."""

    async def restart(self) -> None:
        """Tear the session down and start authenticating again."""
        events = getattr(self, "events", None)
        if events is None:
            raise RuntimeError("restart() called before start()")
        await self.stop()
        await self.start(events)

    @abstractmethod
    async def send_text(self, chat_id: str, body: str) -> Any:
        """Send *body* to *chat_id*; return the transport message (or its id)."""

    @abstractmethod
    async def fetch_contact_info(self, sender_id: str) -> ContactInfo:
        pass

    @abstractmethod
    async def list_recent_chats(self, limit: int) -> list[ChatSummary]:
        pass
