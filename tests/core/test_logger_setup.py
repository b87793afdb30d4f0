import logging

import pytest

from whatsrelay.core import logger_setup
from whatsrelay.core.logger_setup import _DuplicateFilter, merge_dicts, setup_logging


def test_merge_dicts_recurses() -> None:
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    merged = merge_dicts(base, {"a": {"b": 10}, "e": 5})
    assert merged == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}


def test_merge_dicts_warns_on_type_mismatch() -> None:
    with pytest.warns(UserWarning, match="Type mismatch"):
        merge_dicts({"level": "INFO"}, {"level": 10})


def test_duplicate_filter_drops_repeats() -> None:
    flt = _DuplicateFilter(window=2)

    def record(msg: str) -> logging.LogRecord:
        return logging.LogRecord("t", logging.INFO, __file__, 1, msg, None, None)

    assert flt.filter(record("a")) is True
    assert flt.filter(record("a")) is False
    assert flt.filter(record("b")) is True
    assert flt.filter(record("c")) is True
    assert flt.filter(record("a")) is True


def test_setup_logging_honours_env_level(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    previous = root.level
    monkeypatch.setenv("LOG_LEVEL", "debug")
    try:
        setup_logging(force=True)
        assert root.level == logging.DEBUG
    finally:
        monkeypatch.delenv("LOG_LEVEL")
        setup_logging({"root": {"level": "WARNING"}}, force=True)
        root.setLevel(previous)


def test_setup_logging_is_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger_setup, "_CONFIGURED", True)
    monkeypatch.setenv("LOG_LEVEL", "CRITICAL")
    setup_logging()
    assert logging.getLogger().level != logging.CRITICAL


def test_missing_handlers_fall_back_to_console() -> None:
    with pytest.warns(UserWarning, match="missing handlers"):
        setup_logging({"root": {"handlers": []}}, force=True)
    handlers = logging.getLogger().handlers
    assert any(type(h) is logging.StreamHandler for h in handlers)
    setup_logging({"root": {"level": "WARNING"}}, force=True)


def test_plain_format_uses_stream_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "plain")
    try:
        setup_logging(force=True)
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert type(handlers[0]) is logging.StreamHandler
    finally:
        monkeypatch.delenv("LOG_FORMAT")
        setup_logging({"root": {"level": "WARNING"}}, force=True)
