"""Shared pytest configuration."""

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any setup_logging() call made by a previous test."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
