"""
Settings for the relay.  Nested groups live in their own models
(ReplyTexts, QueueConfig, ReconnectConfig) and can be set from the
environment with ``__`` as delimiter, e.g. ``REPLIES__PONG=...``.
"""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings


class ReplyTexts(BaseModel):
    pong: str = "Pong! Bot is alive 🚀"
    echo_prompt: str = "Please provide text to echo!"
    help: str = (
        "Available Commands:\n"
        "{prefix}help - Show this help\n"
        "{prefix}ping - Check bot status\n"
        "{prefix}info - Get contact info\n"
        "{prefix}echo [text] - Echo back your message"
    )
    info: str = "Contact Info:\nName: {name}\nNumber: {number}\nStatus: {status}"
    unknown: str = "Unknown command: {command}\nType {prefix}help for available commands"
    internal_error: str = "An internal error occurred. Please try again later."

    model_config = {"extra": "ignore"}

    @field_validator("pong", "echo_prompt", "unknown", "internal_error")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reply texts must not be empty")
        return v


class QueueConfig(BaseModel):
    events: int = 1000  # transport -> normalizer channel
    observer: int = 1000  # per-observer outbox

    model_config = {"extra": "ignore"}


class ReconnectConfig(BaseModel):
    max_tries: int = 0  # 0 = retry forever
    initial_delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 60.0

    model_config = {"extra": "ignore"}


class Settings(BaseSettings):
    if TYPE_CHECKING:  # pragma: no cover

        def __init__(self, **data: Any) -> None: ...

    bot_prefix: str = "!"
    wapi_session_name: str = "whatsrelay"

    # --- Request surface ---
    host: str = "0.0.0.0"
    port: int = 3000

    # --- Transport ---
    transport: str = "whatsrelay.transports.loopback:LoopbackTransport"
    chat_suffix: str = "c.us"
    contacts_limit: int = 50

    # --- observability ---
    metrics_port: int = 0  # Prometheus exporter port (0 = disabled)

    replies: ReplyTexts = ReplyTexts()
    queues: QueueConfig = QueueConfig()
    reconnect: ReconnectConfig = ReconnectConfig()

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "allow",
        "env_nested_delimiter": "__",
    }

    @field_validator("bot_prefix")
    @classmethod
    def _prefix_shape(cls, v: str) -> str:
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("BOT_PREFIX must be non-empty and contain no whitespace")
        return v

    @field_validator("contacts_limit")
    @classmethod
    def _positive_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("CONTACTS_LIMIT must be positive")
        return v


settings: "Settings" = Settings()

__all__ = [
    "Settings",
    "ReplyTexts",
    "QueueConfig",
    "ReconnectConfig",
    "settings",
]
