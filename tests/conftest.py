"""
Pytest Configuration and Fixtures for eventline Tests
=====================================================

Purpose
-------
Centralized fixtures for the eventline test suite.

Responsibilities
----------------
- Put the process in the testing environment
- Provide a fresh EventManager per test
- Reset class-level configuration and log context between tests
- Provide mocks for collaborators (ConfigManager)

Architecture Notes
------------------
- Event categories and sample events live in ``tests/unit/event/sample_events``
  so handler annotations resolve against a real module namespace.
- ConfigManager is a class-level singleton; the autouse fixture resets it on
  both sides of every test.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

from eventline.core.config import Config, ConfigManager
from eventline.core.event import EventManager
from eventline.core.logging.logger import clear_log_context

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["EVENTLINE_ENVIRONMENT"] = "testing"
    os.environ["EVENTLINE_LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# STATE ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Start and finish every test with pristine config and log context."""
    ConfigManager.reset()
    clear_log_context()
    yield
    ConfigManager.reset()
    clear_log_context()


# ============================================================================
# EVENT FIXTURES
# ============================================================================


@pytest.fixture
def manager() -> EventManager:
    """
    Fresh EventManager with built-in defaults.

    Default tier DEFAULT, metrics enabled, empty registries.
    """
    return EventManager()


@pytest.fixture
def calls() -> list[str]:
    """Shared list handlers append to, to assert invocation order."""
    return []


@pytest.fixture
def owner() -> object:
    """Stand-in for the component (plugin, module) contributing handlers."""
    return object()


# ============================================================================
# MOCK FIXTURES
# ============================================================================


@pytest.fixture
def mock_config_manager(mocker):
    """
    Mock ConfigManager class.

    ``get`` returns the passed default, ``get_bool`` returns True.
    """
    mock_config = mocker.MagicMock()
    mock_config.get = mocker.MagicMock(side_effect=lambda key, default=None: default)
    mock_config.get_bool = mocker.MagicMock(return_value=True)
    return mock_config
