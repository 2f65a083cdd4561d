"""Shared pytest configuration."""

import pytest

from memomark.observability.logging import configure_logging


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    """Route structured logs through stdlib logging at WARNING, away from stdout."""
    configure_logging(level="WARNING")
