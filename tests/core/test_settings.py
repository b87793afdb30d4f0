import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from whatsrelay.core.settings import Settings


def test_defaults(settings: Settings) -> None:
    assert settings.bot_prefix == "!"
    assert settings.port == 3000
    assert settings.chat_suffix == "c.us"
    assert settings.metrics_port == 0
    assert settings.queues.observer == 1000
    assert settings.reconnect.max_tries == 0


def test_settings_reads_env_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BOT_PREFIX", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        env_path = Path(tmpdir) / ".env"
        env_path.write_text("BOT_PREFIX=/\nPORT=8080\n")

        s = Settings(_env_file=env_path)

    assert s.bot_prefix == "/"
    assert s.port == 8080


def test_nested_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLIES__PONG", "pong!")
    monkeypatch.setenv("QUEUES__OBSERVER", "5")
    monkeypatch.setenv("RECONNECT__MAX_TRIES", "3")

    s = Settings(_env_file=None)

    assert s.replies.pong == "pong!"
    assert s.queues.observer == 5
    assert s.reconnect.max_tries == 3


@pytest.mark.parametrize("prefix", ["", " ", "! "])
def test_prefix_must_be_non_blank(prefix: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, bot_prefix=prefix)


def test_contacts_limit_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, contacts_limit=0)


def test_empty_reply_text_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLIES__PONG", "   ")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
