"""
Tests for logging setup and the exception hierarchy.

Tests cover:
- setup_logging installs a single stderr handler at LOG_LEVEL
- Explicit dev_mode / level arguments win over the environment
- Noisy storage loggers are quieted
- bind_user / clear_bound_context manage structlog context
- Exception hierarchy roots
"""

from __future__ import annotations

import logging
from datetime import date

import pytest
import structlog

from selfpatch.lib.exceptions import (
    ConfigurationError,
    DiagnosticAlreadySubmittedError,
    RepositoryError,
    SelfPatchException,
    StateError,
    ValidationError,
)
from selfpatch.lib.logging import bind_user, clear_bound_context, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def test_setup_logging_configures_root(monkeypatch, restore_logging):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("SELFPATCH_DEV_MODE", "1")

    setup_logging()

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_unknown_level_falls_back_to_info(monkeypatch, restore_logging):
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    setup_logging()

    assert logging.getLogger().level == logging.INFO


def test_explicit_arguments_override_environment(monkeypatch, restore_logging):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("SELFPATCH_DEV_MODE", "1")

    setup_logging(dev_mode=False, level="warning")

    root = logging.getLogger()
    assert root.level == logging.WARNING
    renderer = root.handlers[0].formatter.processors[-1]
    assert isinstance(renderer, structlog.processors.JSONRenderer)


def test_bind_user_adds_context(restore_logging):
    bind_user("user-1")
    assert structlog.contextvars.get_contextvars() == {"user_id": "user-1"}

    clear_bound_context()
    assert structlog.contextvars.get_contextvars() == {}


@pytest.mark.parametrize(
    "exc_class",
    [ConfigurationError, ValidationError, StateError, RepositoryError],
)
def test_exceptions_share_root(exc_class):
    assert issubclass(exc_class, SelfPatchException)


def test_already_submitted_is_state_error():
    error = DiagnosticAlreadySubmittedError("user-1", date(2026, 3, 2))

    assert isinstance(error, StateError)
    assert error.week_starting == date(2026, 3, 2)
    assert "2026-03-02" in str(error)
