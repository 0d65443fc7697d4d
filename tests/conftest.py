"""Shared pytest fixtures for ingress_renewal_manager tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import pytest
import structlog
import typer
from typer.testing import CliRunner

from ingress_renewal_manager.cli.main import app


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    # Clear any IRM_ prefixed environment variables
    for key in list(os.environ.keys()):
        if key.startswith("IRM_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo handlers and structlog config installed by CLI invocations."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def cli_app() -> typer.Typer:
    """Return the CLI app for testing."""
    return app
