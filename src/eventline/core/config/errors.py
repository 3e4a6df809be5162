"""
Configuration error hierarchy for eventline.

Purpose
-------
Provides domain-specific exceptions for configuration loading and lookup with
clear error classification and helpful error messages.

Non-Responsibilities
--------------------
- Error logging (handled by logger)
- Error recovery logic (handled by ConfigManager)

Exception Hierarchy
-------------------
ConfigurationError (eventline.core.exceptions)
└── ConfigError (base for this subsystem)
    ├── ConfigValidationError (type / value validation failures)
    └── ConfigInitializationError (startup / YAML load failures)
"""

from eventline.core.exceptions import ConfigurationError, ErrorSeverity


class ConfigError(ConfigurationError):
    """
    Base exception for all configuration-related errors.

    All configuration exceptions inherit from this class to enable
    catching all config-related errors with a single except clause.

    Example
    -------
    >>> try:
    ...     ConfigManager.get_bool("event.metrics_enabled")
    ... except ConfigError as e:
    ...     logger.error(f"Config lookup failed: {e}")
    """


class ConfigValidationError(ConfigError):
    """
    Raised when a configuration value has the wrong type or an unknown value.

    Example
    -------
    >>> ConfigManager.set_override("event.metrics_enabled", "sometimes")
    >>> ConfigManager.get_bool("event.metrics_enabled")
    Traceback (most recent call last):
    ConfigValidationError: ...
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR


class ConfigInitializationError(ConfigError):
    """
    Raised when ConfigManager initialization fails.

    This exception is raised when:
    - A YAML config file exists but cannot be parsed
    - A YAML root object is not a mapping and strict loading was requested

    This is a critical error that typically requires intervention
    before the application can continue.
    """


__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "ConfigInitializationError",
]
