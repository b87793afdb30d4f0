"""
core/state.py - Session lifecycle state management.
Defines the SessionState enum and the SessionStateMachine that owns the single
session's current state.  ``apply_event`` is the only mutator.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable

from whatsrelay.core.events import NormalizedEvent, QrIssued, StatusChanged

logger = logging.getLogger(__name__)

TransitionCallback = Callable[["SessionState", "SessionState"], Any]


class SessionState(enum.Enum):
    INITIALIZING = "initializing"
    AWAITING_AUTHENTICATION = "awaiting_authentication"
    READY = "ready"
    DISCONNECTED = "disconnected"


class SessionStateMachine:
    """
    Tracks one session's lifecycle:

        INITIALIZING -> AWAITING_AUTHENTICATION   (QrIssued)
        *            -> READY                     (StatusChanged ready=True)
        *            -> DISCONNECTED              (StatusChanged ready=False)
        DISCONNECTED -> AWAITING_AUTHENTICATION   (QrIssued, re-auth loop)

    There is no terminal state.  Content events (messages, acks, commands)
    pass through without touching the state.
    """

    def __init__(self, initial_state: SessionState = SessionState.INITIALIZING) -> None:
        self._state = initial_state
        self._last_state: SessionState | None = None
        self._lock = threading.Lock()
        self._listeners: list[TransitionCallback] = []

    def current_state(self) -> SessionState:
        return self._state

    @property
    def last_state(self) -> SessionState | None:
        return self._last_state

    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    def on_transition(self, callback: TransitionCallback) -> None:
        """Register a callback for state transitions: fn(old_state, new_state)."""
        self._listeners.append(callback)

    def apply_event(self, event: NormalizedEvent) -> SessionState:
        with self._lock:
            old = self._state
            new = self._next_state(old, event)
            if new is old:
                return old
            self._last_state = old
            self._state = new

        logger.info("Session state changing from %s to %s", old.name, new.name)
        for callback in list(self._listeners):
            try:
                callback(old, new)
            except Exception:
                logger.exception("State transition callback %r failed", callback)
        return new

    @staticmethod
    def _next_state(current: SessionState, event: NormalizedEvent) -> SessionState:
        if isinstance(event, StatusChanged):
            return SessionState.READY if event.ready else SessionState.DISCONNECTED
        if isinstance(event, QrIssued):
            if current is SessionState.READY:
                # A ready session only leaves READY through a disconnect.
                logger.warning("QR issued while session is ready; ignoring")
                return current
            return SessionState.AWAITING_AUTHENTICATION
        return current


__all__ = ["SessionState", "SessionStateMachine", "TransitionCallback"]
