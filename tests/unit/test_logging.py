"""Unit tests for the logging configuration module."""

import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog

from dfx_upgrade.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Reset root logger state before and after each test."""
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level
    logging.root.handlers.clear()
    logging.root.setLevel(logging.WARNING)
    yield
    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)


def _settings(log_level: str = "INFO", json_logs: bool = False) -> MagicMock:
    mock_settings = MagicMock()
    mock_settings.log_level = log_level
    mock_settings.is_json_logging = json_logs
    return mock_settings


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.mark.parametrize(
        ("configured", "expected"),
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("NONEXISTENT", logging.INFO)],
    )
    def test_level_from_settings(self, configured, expected):
        """basicConfig receives the configured level, falling back to INFO."""
        with patch("dfx_upgrade.logging.get_settings", return_value=_settings(configured)):
            with patch("dfx_upgrade.logging.logging.basicConfig") as mock_basic:
                setup_logging()

        assert mock_basic.call_args.kwargs["level"] == expected

    def test_verbose_forces_debug(self):
        """--verbose wins over a quieter configured level."""
        with patch("dfx_upgrade.logging.get_settings", return_value=_settings("ERROR")):
            with patch("dfx_upgrade.logging.logging.basicConfig") as mock_basic:
                setup_logging(verbose=True)

        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    def test_reduces_http_client_noise(self):
        """httpx and httpcore are limited to WARNING."""
        with patch("dfx_upgrade.logging.get_settings", return_value=_settings("DEBUG")):
            setup_logging(verbose=True)

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_console_renderer_by_default(self):
        with patch("dfx_upgrade.logging.get_settings", return_value=_settings()):
            with patch("dfx_upgrade.logging.structlog.configure") as mock_configure:
                setup_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_json_renderer_when_configured(self):
        with patch("dfx_upgrade.logging.get_settings", return_value=_settings(json_logs=True)):
            with patch("dfx_upgrade.logging.structlog.configure") as mock_configure:
                setup_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_debug_events_filtered_at_info(self, capsys):
        with patch("dfx_upgrade.logging.get_settings", return_value=_settings("INFO")):
            setup_logging()

        log = get_logger("dfx_upgrade.test")
        log.debug("hidden_event")
        log.info("visible_event", url="https://sdk.example.test/manifest.json")

        err = capsys.readouterr().err
        assert "visible_event" in err
        assert "https://sdk.example.test/manifest.json" in err
        assert "hidden_event" not in err


class TestGetLogger:
    """Tests for get_logger."""

    def test_returns_bound_logger_proxy(self):
        log = get_logger("dfx_upgrade.anything")
        assert hasattr(log, "info")
        assert hasattr(log, "debug")
