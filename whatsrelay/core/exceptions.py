#!/usr/bin/env python
"""
core/exceptions.py - Central module for custom exception classes.

Each error carries a ``status`` hint the web layer turns into an HTTP code.
"""


class DomainError(Exception):
    """
    Base class for domain-specific exceptions with a unified error message format.
    """

    status: int = 500

    def __init__(self, message: str):
        super().__init__(f"[DomainError] {message}")
        self.detail = message


class InputError(DomainError):
    """Malformed command, recipient or body; rejected before any side effect."""

    status = 400


class NotReadyError(DomainError):
    """The session is not in the Ready state."""

    status = 400

    def __init__(self, message: str = "WhatsApp client not ready"):
        super().__init__(message)


class TransportFailure(DomainError):
    """The underlying send/fetch call failed."""

    status = 500

    def __init__(self, reason: str):
        super().__init__(f"transport failure: {reason}")
        self.reason = reason


class MalformedEventError(DomainError):
    """
    A transport payload had an unrecognised shape.
    Raised inside the normalizer and swallowed at its boundary.
    """

    status = 422
