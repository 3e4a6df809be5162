"""
Unit tests for event system initialization and shutdown.
"""

import pytest

from eventline.core.config import ConfigInitializationError, ConfigManager
from eventline.core.event import EventManager, PriorityTier
from eventline.core.event.setup import initialize_event_system, shutdown_event_system
from tests.unit.event.sample_events import ROOT


@pytest.fixture
def stub_logging(mocker):
    """Keep the real queue listener out of unit tests."""
    return (
        mocker.patch("eventline.core.event.setup.setup_logging"),
        mocker.patch("eventline.core.event.setup.shutdown_logging"),
    )


class TestInitializeEventSystem:
    def test_loads_yaml_and_configures_manager(self, tmp_path, stub_logging):
        (tmp_path / "event.yaml").write_text(
            "event:\n  default_tier: early\n  metrics_enabled: false\n",
            encoding="utf-8",
        )
        manager = EventManager()

        configured = initialize_event_system(tmp_path, manager=manager)

        setup_logging, _ = stub_logging
        setup_logging.assert_called_once_with()
        assert configured is manager
        assert manager.default_tier is PriorityTier.EARLY
        assert not manager.metrics_enabled

    def test_missing_config_dir_uses_builtin_defaults(self, tmp_path, stub_logging):
        manager = initialize_event_system(tmp_path / "absent", manager=EventManager())

        assert manager.default_tier is PriorityTier.DEFAULT
        assert ConfigManager.health_snapshot()["initialized"]

    def test_strict_config_raises_on_broken_yaml(self, tmp_path, stub_logging):
        (tmp_path / "broken.yaml").write_text("event: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigInitializationError):
            initialize_event_system(tmp_path, manager=EventManager(), strict_config=True)

    def test_defaults_to_module_level_manager(self, tmp_path, stub_logging):
        from eventline.core.event import event_manager

        assert initialize_event_system(tmp_path) is event_manager


class TestShutdownEventSystem:
    def test_clears_bindings_and_stops_logging(self, stub_logging, calls):
        manager = EventManager()
        manager.register_single(ROOT, PriorityTier.DEFAULT, calls.append, "host")

        shutdown_event_system(manager)

        _, shutdown_logging = stub_logging
        shutdown_logging.assert_called_once_with()
        assert manager.get_binding_count() == 0
