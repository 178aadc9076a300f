"""
Pytest Configuration for Edge Case Engine Tests
"""

import logging

import pytest

# Import all fixtures
from tests.fixtures.trip_fixtures import *  # noqa


@pytest.fixture
def restore_logging():
    """Put root logger handlers and level back after a test reconfigures logging."""
    import structlog

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()
