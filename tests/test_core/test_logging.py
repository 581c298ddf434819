"""Tests for structured logging.

Test Strategy:
1. Test JSON lines carry level, logger, message and run correlation id
2. Test extra= fields are nested under "extra"
3. Test the colored formatter appends the run id
4. Test configure_logging installs exactly one handler

Each test follows the pattern:
- Given: A log record (optionally inside a bound correlation id)
- When: A formatter / configure_logging runs
- Then: Output contains the expected fields
"""
import json
import logging

from sportsync.core.logging import (
    ColoredFormatter,
    JSONFormatter,
    clear_correlation_id,
    configure_logging,
    set_correlation_id,
)


def make_record(message="Sync complete", **extra):
    record = logging.LogRecord("sportsync.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Formatter output."""

    def test_json_includes_correlation_id(self):
        token = set_correlation_id("run-123")
        try:
            payload = json.loads(JSONFormatter().format(make_record()))
        finally:
            clear_correlation_id(token)

        assert payload["level"] == "INFO"
        assert payload["logger"] == "sportsync.test"
        assert payload["message"] == "Sync complete"
        assert payload["correlation_id"] == "run-123"
        assert "extra" not in payload

    def test_json_nests_extra_fields(self):
        payload = json.loads(JSONFormatter().format(make_record(source="thesportsdb")))

        assert payload["extra"] == {"source": "thesportsdb"}
        assert payload["correlation_id"] == ""

    def test_colored_appends_run_id(self):
        token = set_correlation_id("run-9")
        try:
            line = ColoredFormatter().format(make_record())
        finally:
            clear_correlation_id(token)

        assert "sportsync.test: Sync complete" in line
        assert line.endswith("| run=run-9")


class TestConfigureLogging:
    """Root logger setup."""

    def test_replaces_root_handlers(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        handler = logging.NullHandler()
        try:
            configure_logging(level="debug", json_output=False, handler=handler)

            assert root.handlers == [handler]
            assert root.level == logging.DEBUG
            assert isinstance(handler.formatter, ColoredFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
