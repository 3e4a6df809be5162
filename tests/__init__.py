"""
eventline Test Suite
====================

Test Organization
-----------------
- tests/unit/event/    : categories, registries, registration and dispatch
- tests/unit/config/   : static Config and the YAML-backed ConfigManager
- tests/unit/logging/  : formatters and log context propagation

Testing Philosophy
------------------
- Unit tests are fast and isolated: every test gets its own EventManager
- Follow AAA pattern: Arrange, Act, Assert
"""
