"""
Event System Initialization

Purpose
-------
Bring the eventline stack up and down in the right order for a host process:
logging first, then configuration, then the default EventManager.

Usage
-----
>>> from eventline.core.event.setup import initialize_event_system
>>> manager = initialize_event_system()
>>> manager.install(JoinListener(), owner=plugin)
...
>>> shutdown_event_system()
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from eventline.core.config.manager import ConfigManager
from eventline.core.event.manager import EventManager
from eventline.core.logging.logger import get_logger, setup_logging, shutdown_logging

logger = get_logger(__name__)


def initialize_event_system(
    config_dir: Optional[Path] = None,
    *,
    manager: Optional[EventManager] = None,
    strict_config: bool = False,
) -> EventManager:
    """
    Configure logging, load configuration and configure the event manager.

    Parameters
    ----------
    config_dir:
        YAML config directory; ``Config.CONFIG_DIR`` if None.
    manager:
        EventManager to configure; the module-level ``event_manager`` if None.
    strict_config:
        Fail on unreadable YAML instead of skipping it.

    Returns
    -------
    EventManager:
        The configured manager.

    Raises
    ------
    ConfigInitializationError
        If ``strict_config`` is set and a config file cannot be loaded.
    """
    setup_logging()
    logger.info("Initializing event system...")

    ConfigManager.initialize(config_dir, strict=strict_config)

    if manager is None:
        from eventline.core.event import event_manager as manager

    manager.configure(ConfigManager)

    logger.info(
        "Event system initialization complete",
        extra={
            "default_tier": manager.default_tier.name,
            "metrics_enabled": manager.metrics_enabled,
        },
    )
    return manager


def shutdown_event_system(manager: Optional[EventManager] = None) -> None:
    """
    Drop every binding and flush logging.

    Hosts call this once, on the way out; the manager can be reused after a
    new ``initialize_event_system``.
    """
    if manager is None:
        from eventline.core.event import event_manager as manager

    logger.info("Shutting down event system...")
    removed = manager.clear()
    logger.info(
        "Event system shutdown complete",
        extra={"removed_bindings": removed},
    )
    shutdown_logging()
