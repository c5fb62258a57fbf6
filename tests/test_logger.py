"""Tests for logger.py: setup_logging() and JsonFormatter.

Covers:
- stderr handler always present
- Optional log file handler
- Debug level override and LOG_LEVEL / config level precedence
- JSON formatter output
- Third-party logger silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from lrm_sync.logger import JsonFormatter, setup_logging


@patch("lrm_sync.logger.logging.basicConfig")
class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_logs_to_stderr(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()

        handlers = mock_basic.call_args.kwargs["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr
        assert mock_basic.call_args.kwargs["level"] == logging.WARNING

    def test_log_file_adds_handler(self, mock_basic, tmp_path):
        log_file = tmp_path / "sync.log"
        setup_logging(log_file=str(log_file))

        handlers = mock_basic.call_args.kwargs["handlers"]
        assert len(handlers) == 2
        assert isinstance(handlers[1], logging.FileHandler)
        assert handlers[1].baseFilename == str(log_file)
        handlers[1].close()

    def test_debug_overrides_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(debug=True)
        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    def test_env_beats_config_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(level="INFO")
        assert mock_basic.call_args.kwargs["level"] == logging.ERROR

    def test_config_level_used_without_env(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(level="info")
        assert mock_basic.call_args.kwargs["level"] == logging.INFO

    def test_unknown_level_falls_back_to_warning(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")
        setup_logging()
        assert mock_basic.call_args.kwargs["level"] == logging.WARNING

    def test_json_format(self, mock_basic):
        setup_logging(debug_format="json")
        handler = mock_basic.call_args.kwargs["handlers"][0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_third_party_silenced(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        logging.getLogger("urllib3").setLevel(logging.DEBUG)
        setup_logging(level="INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestJsonFormatter:
    def test_fields(self):
        record = logging.LogRecord(
            "lrm_sync.sync.engine", logging.INFO, __file__, 1, "pushed %d", (3,), None
        )
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "lrm_sync.sync.engine"
        assert payload["msg"] == "pushed 3"
        assert "exc" not in payload

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["exc"]
