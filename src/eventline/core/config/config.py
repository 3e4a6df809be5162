"""
Static configuration management for eventline.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles the settings a host fixes at process start: environment, logging
behaviour, and where YAML configuration lives.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate log level and queue sizing
- Track which values came from the environment versus defaults

Non-Responsibilities
--------------------
- Dynamic configuration (handled by ConfigManager)
- Creating directories (the logging subsystem does this when file logging
  is switched on)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.load()
- Every environment variable is prefixed with ``EVENTLINE_``

Environment Variables
---------------------
- EVENTLINE_ENVIRONMENT: development / testing / staging / production
- EVENTLINE_DEBUG: Debug mode flag (default: False)
- EVENTLINE_LOG_LEVEL: Logging level (default: INFO)
- EVENTLINE_LOG_JSON: Force JSON console output (default: production only)
- EVENTLINE_LOG_COLORS: Colored console output on a TTY (default: True)
- EVENTLINE_LOG_TO_FILE: Also write a daily rotating JSON log (default: False)
- EVENTLINE_LOGS_DIR: Directory for the rotating log (default: ./logs)
- EVENTLINE_CONFIG_DIR: Directory scanned for YAML config (default: ./config)
- EVENTLINE_LOG_QUEUE_SIZE: Bounded logging queue size (default: 10000)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

ENV_PREFIX = "EVENTLINE_"


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, default: Any):
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Centralized static configuration for eventline.

    Usage
    -----
    >>> Config.LOG_LEVEL
    'INFO'
    >>> Config.is_production()
    False
    >>> Config.get_config_summary()["log_to_file"]
    False
    """

    _metrics: Optional[_ConfigLoadMetrics] = None

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # =========================================================================
    # Logging Output
    # =========================================================================

    # None means "decide from the environment" (JSON in production only).
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False
    LOG_QUEUE_SIZE: int = 10_000

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    LOGS_DIR: Path = Path("logs")
    CONFIG_DIR: Path = Path("config")

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Out-of-range and unparsable values fall back to ``default`` and are
        recorded as validation errors.

        Example
        -------
        >>> Config._safe_int("LOG_QUEUE_SIZE", 10_000, min_val=100)
        10000
        """
        cls._init_metrics()
        env_key = ENV_PREFIX + key
        raw_value = os.getenv(env_key)

        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            error = f"{env_key}='{raw_value}' is not a valid integer, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        if min_val is not None and value < min_val:
            error = f"{env_key}={value} is below minimum {min_val}, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        if max_val is not None and value > max_val:
            error = f"{env_key}={value} exceeds maximum {max_val}, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()
        env_key = ENV_PREFIX + key
        raw_value = os.getenv(env_key)

        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            error = f"{env_key}='{raw_value}' is not a valid boolean, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        cls._init_metrics()
        env_key = ENV_PREFIX + key
        value = os.getenv(env_key, default)
        cls._metrics.record_env_load(key, env_key in os.environ, default)
        return value

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; call again after changing the
        environment (tests do this through monkeypatch).
        """
        cls._metrics = _ConfigLoadMetrics()

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))

        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO").upper()
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if cls.LOG_LEVEL not in valid_log_levels:
            error = f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO"
            logging.warning(error)
            cls._metrics.record_validation_error("LOG_LEVEL", error)
            cls.LOG_LEVEL = "INFO"

        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        cls.LOG_TO_FILE = bool(cls._safe_bool("LOG_TO_FILE", False))
        cls.LOG_QUEUE_SIZE = cls._safe_int(
            "LOG_QUEUE_SIZE", 10_000, min_val=100, max_val=1_000_000
        )

        cls.LOGS_DIR = Path(cls._safe_str("LOGS_DIR", "logs"))
        cls.CONFIG_DIR = Path(cls._safe_str("CONFIG_DIR", "config"))

        cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == Environment.DEVELOPMENT.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT == Environment.TESTING.value

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get a configuration summary suitable for a startup log line."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "log_json": cls.LOG_JSON,
            "log_to_file": cls.LOG_TO_FILE,
            "logs_dir": str(cls.LOGS_DIR),
            "config_dir": str(cls.CONFIG_DIR),
        }


Config.load()
