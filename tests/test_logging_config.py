"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from calstore.logging_config import HANDLER_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo root logger and structlog changes after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


def _json_lines(err: str) -> list[dict]:
    return [json.loads(line) for line in err.splitlines() if line.startswith("{")]


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_json_events_carry_context(self, capsys) -> None:
        setup_logging("debug", json_logs=True)
        get_logger("calstore.tests").info("calendar_event_saved", event_id="abc")

        [payload] = _json_lines(capsys.readouterr().err)
        assert payload["event"] == "calendar_event_saved"
        assert payload["event_id"] == "abc"
        assert payload["level"] == "info"
        assert payload["logger"] == "calstore.tests"
        assert "timestamp" in payload

    def test_level_filters_events(self, capsys) -> None:
        setup_logging("warning", json_logs=True)
        logger = get_logger("calstore.tests.level")
        logger.info("calendar_range_queried")
        logger.warning("calendar_event_column_decode_fallback", column="tags")

        events = [p["event"] for p in _json_lines(capsys.readouterr().err)]
        assert events == ["calendar_event_column_decode_fallback"]

    def test_stdlib_records_share_renderer(self, capsys) -> None:
        """Library loggers such as SQLAlchemy render as JSON too."""
        setup_logging("info", json_logs=True)
        logging.getLogger("sqlalchemy.pool").warning("pool exhausted")

        [payload] = _json_lines(capsys.readouterr().err)
        assert payload["event"] == "pool exhausted"
        assert payload["logger"] == "sqlalchemy.pool"

    def test_repeated_setup_keeps_one_handler(self) -> None:
        setup_logging("info")
        setup_logging("debug")
        handlers = [h for h in logging.getLogger().handlers if h.get_name() == HANDLER_NAME]
        assert len(handlers) == 1
        assert logging.getLogger().level == logging.DEBUG

    def test_sql_echo_kept_quiet(self) -> None:
        setup_logging("debug")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
