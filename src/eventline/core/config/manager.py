"""
ConfigManager: dynamic configuration for eventline.

Purpose
-------
Serve dot-notation configuration values (``"event.default_tier"``) to the
event engine. YAML files under ``Config.CONFIG_DIR`` supply the defaults;
in-process overrides (hosts and tests) take precedence over them.

Design
------
- YAML is the single source for **defaults**; overrides live in memory only.
- All YAML files in the config directory are deep-merged in sorted path order
  so that modular files compose deterministically.
- Built-in defaults cover every key the engine reads, so a missing config
  directory is not an error.
- Class-level singleton, same as ``Config``; ``reset()`` restores a pristine
  state for tests.
"""

from __future__ import annotations

import copy
import threading
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from eventline.core.config.config import Config
from eventline.core.config.errors import (
    ConfigInitializationError,
    ConfigValidationError,
)
from eventline.core.logging.logger import get_logger

logger = get_logger(__name__)

_BUILTIN_DEFAULTS: Dict[str, Any] = {
    "event": {
        "default_tier": "DEFAULT",
        "metrics_enabled": True,
    },
}

_MISSING = object()


class ConfigManager:
    """
    Dynamic configuration with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> ConfigManager.initialize()
    >>> ConfigManager.get("event.default_tier")
    'DEFAULT'
    >>> ConfigManager.set_override("event.metrics_enabled", False)
    >>> ConfigManager.get_bool("event.metrics_enabled")
    False
    """

    _defaults: Dict[str, Any] = copy.deepcopy(_BUILTIN_DEFAULTS)
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _lock = threading.RLock()

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path, *, strict: bool) -> int:
        if not config_dir.exists():
            logger.debug(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                if strict:
                    raise ConfigInitializationError(
                        str(yaml_file), f"cannot load YAML: {exc}"
                    ) from exc
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                if strict:
                    raise ConfigInitializationError(
                        str(yaml_file),
                        f"YAML root must be a mapping, got {type(data).__name__}",
                    )
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file),
                        "root_type": type(data).__name__,
                    },
                )

        return loaded_count

    @classmethod
    def initialize(
        cls, config_dir: Optional[Path] = None, *, strict: bool = False
    ) -> None:
        """
        Load YAML defaults from ``config_dir`` (``Config.CONFIG_DIR`` if None).

        Parameters
        ----------
        config_dir:
            Directory scanned recursively for ``*.yaml`` / ``*.yml``.
        strict:
            Raise ConfigInitializationError on unreadable YAML instead of
            logging a warning and skipping the file.
        """
        with cls._lock:
            cls._defaults = copy.deepcopy(_BUILTIN_DEFAULTS)
            directory = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
            loaded = cls._load_yaml_configs(directory, strict=strict)
            cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={"config_dir": str(directory), "yaml_file_count": loaded},
        )

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and YAML defaults, back to built-in defaults."""
        with cls._lock:
            cls._defaults = copy.deepcopy(_BUILTIN_DEFAULTS)
            cls._overrides = {}
            cls._initialized = False

    # =========================================================================
    # READ API
    # =========================================================================

    @staticmethod
    def _traverse(tree: Dict[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return _MISSING
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Overrides win over YAML/built-in defaults; ``default`` is returned
        when neither has the key.
        """
        with cls._lock:
            if key in cls._overrides:
                return cls._overrides[key]
            value = cls._traverse(cls._defaults, key)
        return default if value is _MISSING else value

    @classmethod
    def get_bool(cls, key: str, default: bool = False) -> bool:
        value = cls.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"true", "yes", "1", "on"}:
                return True
            if normalized in {"false", "no", "0", "off"}:
                return False
        raise ConfigValidationError(key, f"expected a boolean, got {value!r}")

    @classmethod
    def get_all_keys(cls) -> List[str]:
        """Return the top-level keys currently known (defaults + overrides)."""
        with cls._lock:
            keys = set(cls._defaults)
            keys.update(k.split(".", 1)[0] for k in cls._overrides)
        return sorted(keys)

    # =========================================================================
    # WRITE API
    # =========================================================================

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        with cls._lock:
            cls._overrides[key] = value
        logger.debug("Config override set", extra={"config_key": key})

    @classmethod
    def clear_override(cls, key: str) -> None:
        with cls._lock:
            cls._overrides.pop(key, None)

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        with cls._lock:
            return {
                "initialized": cls._initialized,
                "override_count": len(cls._overrides),
                "top_level_keys": len(cls._defaults),
            }
