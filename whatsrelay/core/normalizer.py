#!/usr/bin/env python
"""
core/normalizer.py - Turns raw transport payloads into NormalizedEvent values.

One entry point per transport event kind.  Every entry point is total: a
payload of unexpected shape produces ``None`` and a logged diagnostic instead
of an exception, so nothing malformed reaches the state machine or the hub.
Raw messages may be mappings or attribute-style objects.
"""

from __future__ import annotations

import functools
import logging
import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from whatsrelay.core.events import (
    AckLevel,
    AckUpdated,
    MessageReceived,
    MessageSent,
    QrIssued,
    StatusChanged,
    utcnow,
)
from whatsrelay.core.exceptions import MalformedEventError

logger = logging.getLogger(__name__)

T = TypeVar("T")

READY_MESSAGE = "WhatsApp connected!"
DISCONNECTED_MESSAGE = "WhatsApp disconnected"

# "15551234567@c.us", "15551234567:3@s.whatsapp.net", "1203630@g.us"
_SUFFIX_REGEX = re.compile(r"(?::\d+)?@[\w.]+$")
_CONTROL_REGEX = re.compile(r"[\x00-\x1F\x7F]")

# Epoch values above this are taken to be milliseconds (year 5138 in seconds).
_MILLIS_THRESHOLD = 100_000_000_000


def _total(func: Callable[..., Optional[T]]) -> Callable[..., Optional[T]]:
    """Swallow and log anything a payload-shaped entry point raises."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Optional[T]:
        try:
            return func(*args, **kwargs)
        except MalformedEventError as exc:
            logger.warning("Dropping %s event: %s", func.__name__, exc.detail)
        except Exception:
            logger.warning("Dropping %s event: unreadable payload", func.__name__, exc_info=True)
        return None

    return wrapper


def _get(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def strip_suffix(identifier: str) -> str:
    """Remove the protocol suffix (and device part) from a user identifier."""
    cleaned = _CONTROL_REGEX.sub("", identifier).strip()
    return _SUFFIX_REGEX.sub("", cleaned)


def coerce_timestamp(value: Any) -> datetime:
    """Return *value* as a timezone-aware UTC datetime.

    Accepts epoch seconds, epoch milliseconds, numeric strings, ISO-8601
    strings and datetimes.  ``None`` means "now".
    """
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, bool):
        raise MalformedEventError(f"timestamp must not be a boolean: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            try:
                return coerce_timestamp(datetime.fromisoformat(text.replace("Z", "+00:00")))
            except ValueError:
                raise MalformedEventError(f"unparseable timestamp {value!r}") from None
    if isinstance(value, (int, float)):
        if math.isnan(value):
            logger.warning("Timestamp is NaN; using current time")
            return utcnow()
        seconds = value / 1000 if value > _MILLIS_THRESHOLD else value
        if seconds < 0:
            raise MalformedEventError(f"negative timestamp {value!r}")
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            logger.warning("Timestamp %r out of range; using current time", value)
            return utcnow()
    raise MalformedEventError(f"unsupported timestamp type {type(value).__name__}")


def _message_timestamp(value: Any) -> datetime:
    # An unusable timestamp never costs the message itself.
    try:
        return coerce_timestamp(value)
    except MalformedEventError as exc:
        logger.warning("Ignoring message timestamp: %s", exc.detail)
        return utcnow()


def message_id_of(raw: Any) -> str:
    """
    Extract a stable message id from a transport value.

    Accepts a bare string, or an object/mapping whose ``id`` is either a
    string or a nested ``{"id": ..., "_serialized": ...}`` key.
    """
    if isinstance(raw, str):
        if not raw.strip():
            raise MalformedEventError("empty message id")
        return raw.strip()
    ident = _get(raw, "id")
    if ident is None:
        raise MalformedEventError(f"no message id in {type(raw).__name__}")
    if isinstance(ident, str):
        return message_id_of(ident)
    inner = _get(ident, "id")
    if isinstance(inner, str) and inner.strip():
        return inner.strip()
    serialized = _get(ident, "_serialized")
    if isinstance(serialized, str) and serialized.strip():
        return serialized.strip()
    raise MalformedEventError("message id has no usable key")


def _ack_level(value: Any) -> AckLevel:
    if isinstance(value, AckLevel):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise MalformedEventError(f"ack level must be an integer, got {value!r}")
    try:
        level = int(value)
    except ValueError:
        raise MalformedEventError(f"ack level must be an integer, got {value!r}") from None
    if level < 0:
        raise MalformedEventError(f"negative ack level {level}")
    # Transports report "played" for voice notes above READ.
    return AckLevel(min(level, AckLevel.READ))


class EventNormalizer:
    """Stateless translator from transport callbacks to NormalizedEvent."""

    @_total
    def on_qr(self, secret: Any) -> QrIssued | None:
        if not isinstance(secret, str) or not secret.strip():
            raise MalformedEventError("QR secret must be a non-empty string")
        return QrIssued(secret=secret)

    @_total
    def on_ready(self) -> StatusChanged | None:
        return StatusChanged(ready=True, message=READY_MESSAGE)

    @_total
    def on_disconnected(self, reason: Any = None) -> StatusChanged | None:
        logger.info("Transport reported disconnect: %s", reason or "unknown reason")
        return StatusChanged(ready=False, message=DISCONNECTED_MESSAGE)

    @_total
    def on_message(self, raw: Any) -> MessageReceived | None:
        if raw is None:
            raise MalformedEventError("message payload is empty")
        sender = _get(raw, "from")
        if sender is None:
            sender = _get(raw, "sender")
        body = _get(raw, "body")
        if not isinstance(sender, str) or not strip_suffix(sender):
            raise MalformedEventError("message has no sender")
        if body is None:
            body = ""
        if not isinstance(body, str):
            raise MalformedEventError(f"message body must be text, got {type(body).__name__}")
        return MessageReceived(
            sender=strip_suffix(sender),
            body=body,
            timestamp=_message_timestamp(_get(raw, "timestamp")),
            chat_id=_CONTROL_REGEX.sub("", sender).strip(),
        )

    @_total
    def on_send_result(self, recipient: str, body: str, raw_result: Any) -> MessageSent | None:
        return MessageSent(
            sender=strip_suffix(recipient),
            body=body,
            message_id=message_id_of(raw_result),
        )

    @_total
    def on_ack_update(self, message: Any, ack: Any) -> AckUpdated | None:
        return AckUpdated(message_id=message_id_of(message), ack_level=_ack_level(ack))


__all__ = [
    "EventNormalizer",
    "strip_suffix",
    "coerce_timestamp",
    "message_id_of",
    "READY_MESSAGE",
    "DISCONNECTED_MESSAGE",
]
