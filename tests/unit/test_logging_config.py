"""Tests for the unified log format: 2026-01-06T14:05:52Z [source] LEVEL message"""

from __future__ import annotations

import io
import logging
import re
import sys
from unittest.mock import patch

import pytest

from runboard.logging_config import (
    COMPONENTS,
    TRACE,
    HealthCheckFilter,
    ISO8601Formatter,
    component_for,
    configure_logging,
    get_logger,
    parse_level,
)


def make_record(msg: str, level: int = logging.INFO, args: tuple = (), name: str = "test") -> logging.LogRecord:
    return logging.LogRecord(name=name, level=level, pathname="", lineno=0, msg=msg, args=args, exc_info=None)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for prefix in COMPONENTS:
        logging.getLogger(prefix).setLevel(logging.NOTSET)


class TestISO8601Formatter:
    """The formatter emits a UTC timestamp, the source tag and the level."""

    def test_format(self):
        output = ISO8601Formatter(source="board").format(make_record("Seeded board for 2026-01-06"))
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z \[board\] INFO Seeded board for 2026-01-06$", output)

    def test_trace_level_name(self):
        output = ISO8601Formatter(source="gateway").format(make_record("GET /api/v1/bookings -> 200", TRACE))
        assert "[gateway] TRACE GET /api/v1/bookings" in output

    def test_exception_text_appended(self):
        try:
            raise RuntimeError("save failed")
        except RuntimeError:
            record = make_record("Error saving board")
            record.exc_info = sys.exc_info()

        output = ISO8601Formatter(source="api").format(record)
        assert "Error saving board\nTraceback" in output
        assert "RuntimeError: save failed" in output

    def test_args_interpolated(self):
        output = ISO8601Formatter().format(make_record("Run %s at %d%%", args=("run-a", 90)))
        assert output.endswith("[runboard] INFO Run run-a at 90%")


class TestHealthCheckFilter:
    """Health check access logs are dropped unless at DEBUG."""

    @pytest.mark.parametrize("path", ["/health", "/api/health"])
    def test_suppresses_health(self, path):
        record = make_record(f'127.0.0.1:56948 - "GET {path} HTTP/1.1" 200 OK', name="uvicorn.access")
        assert HealthCheckFilter().filter(record) is False

    def test_keeps_board_requests(self):
        record = make_record('127.0.0.1:56948 - "GET /api/board/2026-01-06 HTTP/1.1" 200 OK')
        assert HealthCheckFilter().filter(record) is True

    def test_keeps_paths_that_only_start_with_health(self):
        record = make_record('"GET /healthz HTTP/1.1" 200 OK', name="uvicorn.access")
        assert HealthCheckFilter().filter(record) is True

    def test_keeps_health_at_debug(self):
        record = make_record('"GET /health HTTP/1.1" 200 OK', level=logging.DEBUG)
        assert HealthCheckFilter().filter(record) is True


class TestConfigureLogging:
    """Tests for configure_logging levels and handler wiring."""

    def test_default_level_is_info(self):
        with patch.dict("os.environ", {}, clear=True):
            assert configure_logging(source="test").level == logging.INFO

    def test_debug_flag(self):
        with patch.dict("os.environ", {}, clear=True):
            assert configure_logging(source="test", debug=True).level == logging.DEBUG

    @pytest.mark.parametrize("env_level,expected", [("TRACE", TRACE), ("debug", logging.DEBUG)])
    def test_level_from_env(self, env_level, expected):
        with patch.dict("os.environ", {"LOG_LEVEL": env_level}):
            assert configure_logging(source="test").level == expected

    def test_uvicorn_loggers_share_root_handler(self):
        root = configure_logging(source="api", level=logging.INFO)
        access = logging.getLogger("uvicorn.access")
        assert access.handlers == root.handlers
        assert access.propagate is False
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_end_to_end_output(self):
        configure_logging(source="api", level=logging.INFO)
        stream = io.StringIO()
        handler = logging.getLogger().handlers[0]
        handler.setStream(stream)

        get_logger("runboard.board.session").info("Board for 2026-01-06 is stale")
        get_logger("api.routers.board").info("Loaded board")

        lines = stream.getvalue().splitlines()
        assert re.match(r"^\S+Z \[board\] INFO Board for 2026-01-06 is stale$", lines[0])
        assert re.match(r"^\S+Z \[api\] INFO Loaded board$", lines[1])

    def test_logger_trace_method(self):
        configure_logging(source="api", level=TRACE)
        stream = io.StringIO()
        logging.getLogger().handlers[0].setStream(stream)

        get_logger("runboard.gateway").trace("payload")  # type: ignore[attr-defined]

        assert "[gateway] TRACE payload" in stream.getvalue()

    def test_component_level_override(self):
        with patch.dict("os.environ", {"LOG_LEVEL_GATEWAY": "trace"}, clear=True):
            configure_logging(source="api")
        stream = io.StringIO()
        logging.getLogger().handlers[0].setStream(stream)

        get_logger("runboard.gateway.facility_api").log(TRACE, "GET /api/v1/runs/assignments -> 200")
        get_logger("runboard.board.draft_store").debug("Placed pet pet-1 in run run-a")

        assert "[gateway] TRACE GET /api/v1/runs/assignments" in stream.getvalue()
        assert "Placed pet" not in stream.getvalue()

    def test_reconfigure_clears_component_override(self):
        with patch.dict("os.environ", {"LOG_LEVEL_BOARD": "DEBUG"}, clear=True):
            configure_logging(source="api")
        assert logging.getLogger("runboard.board").level == logging.DEBUG

        with patch.dict("os.environ", {}, clear=True):
            configure_logging(source="api")
        assert logging.getLogger("runboard.board").level == logging.NOTSET


class TestLevelsAndComponents:
    """Tests for level names and logger-to-source mapping."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("trace", TRACE),
            ("Warning", logging.WARNING),
            (" error ", logging.ERROR),
            ("", logging.INFO),
            ("loud", logging.INFO),
        ],
    )
    def test_parse_level(self, value, expected):
        assert parse_level(value) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("runboard.board.placement", "board"),
            ("runboard.gateway", "gateway"),
            ("runboard.config.loader", "config"),
            ("runboard.boardroom", "api"),
            ("uvicorn.access", "api"),
        ],
    )
    def test_component_for(self, name, expected):
        assert component_for(name, "api") == expected
