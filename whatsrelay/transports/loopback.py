"""
transports/loopback.py - In-process session transport.

Simulates a messaging session without any network: it issues a QR secret on
start, becomes ready once ``authenticate()`` is called (or after
``auth_delay`` seconds), records every text it is asked to send and lets the
caller inject inbound messages and delivery acks.  Useful for local runs of
the dashboard and for tests.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from typing import Any

from whatsrelay.core.transport import ChatSummary, ContactInfo, SessionTransport, TransportEvents

logger = logging.getLogger(__name__)

__all__ = ["LoopbackTransport"]


class LoopbackTransport(SessionTransport):
    def __init__(
        self,
        session_name: str = "whatsrelay",
        *,
        auth_delay: float | None = 2.0,
        chat_suffix: str = "c.us",
    ) -> None:
        self.session_name = session_name
        self.auth_delay = auth_delay
        self.chat_suffix = chat_suffix
        self.events: TransportEvents | None = None
        self.ready = False
        self.sent: list[tuple[str, str, str]] = []
        self.contacts: dict[str, ContactInfo] = {}
        self._chats: OrderedDict[str, ChatSummary] = OrderedDict()
        self._auth_task: asyncio.Task[None] | None = None

    async def start(self, events: TransportEvents) -> None:
        self.events = events
        self.ready = False
        secret = f"{self.session_name}@{uuid.uuid4().hex}"
        logger.info("Loopback session %s waiting for authentication", self.session_name)
        events.on_qr(secret)
        if self.auth_delay is not None:
            self._auth_task = asyncio.get_running_loop().create_task(self._authenticate_later())

    async def _authenticate_later(self) -> None:
        assert self.auth_delay is not None
        await asyncio.sleep(self.auth_delay)
        self.authenticate()

    async def stop(self) -> None:
        if self._auth_task is not None:
            self._auth_task.cancel()
            self._auth_task = None
        self.ready = False

    # ------------------------------------------------------------------+
    # Simulation controls                                               |
    # ------------------------------------------------------------------+

    def _require_events(self) -> TransportEvents:
        if self.events is None:
            raise RuntimeError("loopback transport not started")
        return self.events

    def authenticate(self) -> None:
        self.ready = True
        self._require_events().on_ready()

    def disconnect(self, reason: str = "LOGOUT") -> None:
        self.ready = False
        self._require_events().on_disconnected(reason)

    def inject_message(self, sender: str, body: str, timestamp: Any = None) -> None:
        chat_id = f"{sender.lstrip('+')}@{self.chat_suffix}"
        self._touch_chat(chat_id, unread=1)
        self._require_events().on_message(
            {
                "from": chat_id,
                "body": body,
                "timestamp": int(time.time()) if timestamp is None else timestamp,
            }
        )

    def inject_ack(self, message_id: str, ack: int) -> None:
        self._require_events().on_ack_update({"id": {"id": message_id}}, ack)

    # ------------------------------------------------------------------+
    # SessionTransport                                                  |
    # ------------------------------------------------------------------+

    async def send_text(self, chat_id: str, body: str) -> Any:
        if not self.ready:
            raise ConnectionError("loopback session is not connected")
        message_id = uuid.uuid4().hex[:20].upper()
        self.sent.append((chat_id, body, message_id))
        self._touch_chat(chat_id)
        return {"id": {"id": message_id, "_serialized": f"true_{chat_id}_{message_id}"}}

    async def fetch_contact_info(self, sender_id: str) -> ContactInfo:
        return self.contacts.get(sender_id.lstrip("+"), ContactInfo(display_name=None))

    async def list_recent_chats(self, limit: int) -> list[ChatSummary]:
        return list(reversed(self._chats.values()))[:limit]

    def _touch_chat(self, chat_id: str, unread: int = 0) -> None:
        chat_id = chat_id.lstrip("+")
        previous = self._chats.pop(chat_id, None)
        user = chat_id.split("@", 1)[0]
        contact = self.contacts.get(user)
        self._chats[chat_id] = ChatSummary(
            id=chat_id,
            display_name=(contact.display_name if contact else None) or user,
            is_group=chat_id.endswith("@g.us"),
            unread_count=(previous.unread_count if previous else 0) + unread,
        )
