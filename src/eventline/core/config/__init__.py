"""
Configuration management subsystem for eventline.

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from ``EVENTLINE_*`` environment variables (``.env`` supported)
- Environment type, log level/format, logs and config directories

**Dynamic (ConfigManager):**
- Loaded from YAML defaults in ``Config.CONFIG_DIR`` plus in-memory overrides
- Event engine settings: ``event.default_tier``, ``event.metrics_enabled``

Usage Examples
--------------
```python
from eventline.core.config import Config, ConfigManager

if Config.is_production():
    ...

ConfigManager.initialize()
tier_name = ConfigManager.get("event.default_tier", "DEFAULT")
```
"""

from eventline.core.config.config import Config, Environment
from eventline.core.config.errors import (
    ConfigError,
    ConfigInitializationError,
    ConfigValidationError,
)
from eventline.core.config.manager import ConfigManager

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigError",
    "ConfigInitializationError",
    "ConfigValidationError",
]
