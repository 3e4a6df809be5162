"""
Core infrastructure layer for eventline.

Provides a single import surface for the infrastructure the event engine is
built on:

- Configuration management (Config, ConfigManager)
- Logging (structured logging, logger factory)
- Infrastructure exceptions (EventlineException hierarchy)

This module is intentionally thin: re-exports only, no side effects.
"""

from __future__ import annotations

from eventline.core.config import Config, ConfigManager
from eventline.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    EventlineException,
)
from eventline.core.logging import get_logger, setup_logging

__all__ = [
    # Configuration
    "Config",
    "ConfigManager",
    # Logging
    "setup_logging",
    "get_logger",
    # Infrastructure Exceptions
    "EventlineException",
    "ConfigurationError",
    "ErrorSeverity",
]
