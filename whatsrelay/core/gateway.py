#!/usr/bin/env python
"""
core/gateway.py - Send-Message Gateway.

Validates outbound send requests, checks session readiness, forwards to the
transport and announces accepted messages to observers.  Sends to the same
recipient are serialized with a per-recipient lock so they reach the
transport in call order; different recipients proceed concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from whatsrelay.core import telemetry
from whatsrelay.core.exceptions import InputError, NotReadyError, TransportFailure
from whatsrelay.core.hub import BroadcastHub
from whatsrelay.core.normalizer import EventNormalizer, strip_suffix
from whatsrelay.core.state import SessionStateMachine
from whatsrelay.core.transport import ChatSummary, SessionTransport

logger = logging.getLogger(__name__)

_FORMATTING_REGEX = re.compile(r"[\s\-().]")
_PHONE_REGEX = re.compile(r"^\+\d{5,15}$")


def normalize_phone(raw: str) -> str:
    """
    Return *raw* in canonical ``+<digits>`` form.

    Accepts bare digits, an existing leading ``+``, common formatting
    characters and a trailing chat suffix (``@c.us``).
    Raises InputError when the result is not a plausible phone number.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InputError("recipient must not be empty")
    number = _FORMATTING_REGEX.sub("", strip_suffix(raw))
    if not number.startswith("+"):
        number = "+" + number
    if not _PHONE_REGEX.match(number):
        raise InputError(f"invalid phone number: {raw!r}")
    return number


@dataclass(frozen=True)
class SentMessage:
    message_id: str
    recipient: str


class SendMessageGateway:
    def __init__(
        self,
        transport: SessionTransport,
        state_machine: SessionStateMachine,
        hub: BroadcastHub,
        normalizer: EventNormalizer | None = None,
        *,
        chat_suffix: str = "c.us",
        contacts_limit: int = 50,
    ) -> None:
        self.transport = transport
        self.state_machine = state_machine
        self.hub = hub
        self.normalizer = normalizer or EventNormalizer()
        self.chat_suffix = chat_suffix
        self.contacts_limit = contacts_limit
        self._recipient_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _recipient_lock(self, chat_id: str) -> AsyncIterator[None]:
        lock = self._recipient_locks.setdefault(chat_id, asyncio.Lock())
        self._lock_users[chat_id] = self._lock_users.get(chat_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Forget the lock once nobody holds or waits for it.
            self._lock_users[chat_id] -= 1
            if not self._lock_users[chat_id]:
                del self._lock_users[chat_id]
                del self._recipient_locks[chat_id]

    def _check_sendable(self, body: str) -> None:
        if not isinstance(body, str) or not body.strip():
            raise InputError("message body must not be empty")
        if not self.state_machine.is_ready():
            raise NotReadyError()

    async def send_message(self, recipient_id: str, body: str) -> SentMessage:
        """
        Send *body* to the phone number *recipient_id*.

        Raises:
            InputError: empty recipient/body or unusable phone number.
            NotReadyError: the session is not ready.
            TransportFailure: the transport rejected or failed the send.
        """
        try:
            recipient = normalize_phone(recipient_id)
            self._check_sendable(body)
        except (InputError, NotReadyError):
            telemetry.record_outbound("rejected")
            raise
        return await self._send(f"{recipient}@{self.chat_suffix}", body)

    async def send_to_chat(self, chat_id: str, body: str) -> SentMessage:
        """
        Send *body* to an existing transport chat (``"<id>@c.us"``, ``"<id>@g.us"``).

        The id is used as given, with no phone normalization, so group chats
        and other non-phone ids can be answered.  Raises like ``send_message``.
        """
        try:
            if not isinstance(chat_id, str) or "@" not in chat_id or not strip_suffix(chat_id):
                raise InputError(f"invalid chat id: {chat_id!r}")
            self._check_sendable(body)
        except (InputError, NotReadyError):
            telemetry.record_outbound("rejected")
            raise
        return await self._send(chat_id.strip(), body)

    async def _send(self, chat_id: str, body: str) -> SentMessage:
        async with self._recipient_lock(chat_id):
            try:
                result = await self.transport.send_text(chat_id, body)
            except Exception as exc:
                telemetry.record_outbound("failed")
                logger.error("Error sending message to %s: %s", chat_id, exc)
                raise TransportFailure(str(exc) or type(exc).__name__) from exc

        event = self.normalizer.on_send_result(chat_id, body, result)
        if event is None:
            telemetry.record_outbound("failed")
            raise TransportFailure("transport returned no message id")

        self.hub.broadcast(event)
        telemetry.record_outbound("sent")
        return SentMessage(message_id=event.message_id, recipient=event.sender)

    async def list_contacts(self, limit: int | None = None) -> list[ChatSummary]:
        """Return up to *limit* recent chats (default ``contacts_limit``)."""
        if limit is None:
            limit = self.contacts_limit
        if limit <= 0:
            raise InputError("limit must be positive")
        if not self.state_machine.is_ready():
            raise NotReadyError()
        try:
            chats = await self.transport.list_recent_chats(limit)
        except Exception as exc:
            logger.error("Error fetching contacts: %s", exc)
            raise TransportFailure(str(exc) or type(exc).__name__) from exc
        return list(chats)[:limit]


__all__ = ["SendMessageGateway", "SentMessage", "normalize_phone"]
