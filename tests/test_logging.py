"""Tests for structured logging configuration."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest
import structlog

from wtree.core.logging import configure_logging


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration between tests."""
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


def test_default_level_is_warning() -> None:
    configure_logging()
    assert logging.getLogger().level == logging.WARNING


def test_handler_writes_to_stderr() -> None:
    """stdout is reserved for paths printed by jump and back."""
    configure_logging(level="INFO")

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert handlers[0].stream is sys.stderr


def test_reconfigure_replaces_handler() -> None:
    configure_logging(level="INFO")
    configure_logging(level="DEBUG")
    assert len(logging.getLogger().handlers) == 1
    assert logging.getLogger().level == logging.DEBUG


def _capture() -> io.StringIO:
    captured = io.StringIO()
    logging.getLogger().handlers[0].setStream(captured)
    return captured


def test_json_output_renders_stdlib_records() -> None:
    configure_logging(json_output=True, level="INFO")
    captured = _capture()

    logging.getLogger("wtree.core.config").info("Loading worktree config from %s", "/x")

    data = json.loads(captured.getvalue().strip())
    assert data["event"] == "Loading worktree config from /x"
    assert data["logger"] == "wtree.core.config"
    assert data["level"] == "info"
    assert "timestamp" in data


def test_json_output_renders_structlog_events() -> None:
    configure_logging(json_output=True, level="INFO")
    captured = _capture()

    structlog.get_logger("wtree.test").info("worktree created", branch="feature/auth")

    data = json.loads(captured.getvalue().strip())
    assert data["event"] == "worktree created"
    assert data["branch"] == "feature/auth"


def test_console_output_is_not_json() -> None:
    configure_logging(level="INFO")
    captured = _capture()

    logging.getLogger("wtree.core.copy").info("Copied %s", ".env")

    line = captured.getvalue().strip()
    assert "Copied .env" in line
    with pytest.raises(json.JSONDecodeError):
        json.loads(line)


def test_level_filters_records() -> None:
    configure_logging(json_output=True)
    captured = _capture()

    logging.getLogger("wtree.core.copy").info("Copied %s", ".env")
    logging.getLogger("wtree.core.copy").warning("Skipping include pattern %r", "/etc")

    lines = captured.getvalue().strip().splitlines()
    assert [json.loads(line)["level"] for line in lines] == ["warning"]


@pytest.mark.parametrize("level", ["DEBUG", "info", "ERROR"])
def test_configure_logging_levels(level: str) -> None:
    configure_logging(level=level)
    assert logging.getLogger().level == getattr(logging, level.upper())
