"""
Unit tests for PriorityTier, Binding, HandlerRegistry and RegistryStore.
"""

import threading

import pytest

from eventline.core.event import Binding, CategoryResolutionError, PriorityTier
from eventline.core.event.registry import HandlerRegistry, RegistryStore
from tests.unit.event.sample_events import LEAF, ORPHAN_CHILD, PLAYER, ROOT


def _binding(tier: PriorityTier, owner: object = "host", name: str = "handler") -> Binding:
    return Binding.from_executor(lambda event: None, tier, owner, identifier=name)


class TestPriorityTier:
    """Test tier ranks and cancellation sensitivity."""

    def test_run_order_is_by_rank(self):
        order = PriorityTier.in_run_order()

        assert order[0] is PriorityTier.EARLIEST_IGNORE_CANCELLED
        assert order[-1] is PriorityTier.MONITOR
        assert [t.rank for t in order] == sorted(t.rank for t in order)

    def test_ranks_are_unique(self):
        ranks = [tier.rank for tier in PriorityTier]
        assert len(ranks) == len(set(ranks))

    def test_monitor_and_ignore_cancelled_twins_ignore_cancellation(self):
        assert PriorityTier.MONITOR.ignores_cancelled
        assert PriorityTier.DEFAULT_IGNORE_CANCELLED.ignores_cancelled
        assert not PriorityTier.DEFAULT.ignores_cancelled
        assert not PriorityTier.EARLIEST.ignores_cancelled

    def test_ignore_cancelled_twin_runs_just_before_its_tier(self):
        assert (
            PriorityTier.LATE_IGNORE_CANCELLED.rank + 1 == PriorityTier.LATE.rank
        )

    def test_from_name_is_case_insensitive(self):
        assert PriorityTier.from_name(" late ") is PriorityTier.LATE
        assert PriorityTier.from_name("monitor") is PriorityTier.MONITOR

    def test_from_name_unknown_raises(self):
        with pytest.raises(KeyError):
            PriorityTier.from_name("SOONISH")


class TestBinding:
    """Test Binding construction and identity."""

    def test_identifier_derived_from_executor(self):
        def on_join(event):
            pass

        binding = Binding.from_executor(on_join, PriorityTier.DEFAULT, "host")

        assert binding.identifier.endswith("on_join")
        assert binding.identifier.startswith(__name__)

    def test_bindings_compare_by_identity(self):
        """Two bindings of the same callback are different bindings."""
        def executor(event):
            pass

        first = Binding.from_executor(executor, PriorityTier.DEFAULT, "host")
        second = Binding.from_executor(executor, PriorityTier.DEFAULT, "host")

        assert first != second
        assert first == first

    def test_owner_name_formats(self):
        class Plugin:
            pass

        assert _binding(PriorityTier.DEFAULT, owner="core").owner_name == "core"
        assert _binding(PriorityTier.DEFAULT, owner=None).owner_name == "None"
        assert _binding(PriorityTier.DEFAULT, owner=Plugin()).owner_name.endswith(
            "Plugin"
        )

    def test_binding_is_immutable(self):
        binding = _binding(PriorityTier.DEFAULT)
        with pytest.raises(AttributeError):
            binding.tier = PriorityTier.LATE  # type: ignore[misc]


class TestHandlerRegistry:
    """Test ordering and removal inside one registry."""

    def test_bindings_ordered_by_tier_then_insertion(self):
        registry = HandlerRegistry(ROOT)
        late = _binding(PriorityTier.LATE, name="late")
        early_a = _binding(PriorityTier.EARLY, name="early-a")
        monitor = _binding(PriorityTier.MONITOR, name="monitor")
        early_b = _binding(PriorityTier.EARLY, name="early-b")

        for binding in (late, early_a, monitor, early_b):
            registry.register(binding)

        assert registry.bindings() == (early_a, early_b, late, monitor)

    def test_register_all_keeps_given_order(self):
        registry = HandlerRegistry(ROOT)
        first = _binding(PriorityTier.DEFAULT, name="first")
        second = _binding(PriorityTier.DEFAULT, name="second")

        registry.register_all([first, second])

        assert registry.bindings() == (first, second)

    def test_snapshot_unaffected_by_later_mutation(self):
        """A tuple handed out earlier is never modified."""
        registry = HandlerRegistry(ROOT)
        first = _binding(PriorityTier.DEFAULT)
        registry.register(first)

        snapshot = registry.bindings()
        registry.register(_binding(PriorityTier.EARLY))
        registry.unregister(first)

        assert snapshot == (first,)

    def test_unregister_single_binding(self):
        registry = HandlerRegistry(ROOT)
        binding = _binding(PriorityTier.DEFAULT)
        registry.register(binding)

        assert registry.unregister(binding) is True
        assert registry.unregister(binding) is False
        assert len(registry) == 0

    def test_unregister_owner_removes_only_that_owner(self):
        registry = HandlerRegistry(ROOT)
        plugin_a, plugin_b = object(), object()
        kept = _binding(PriorityTier.LATE, owner=plugin_b)
        registry.register_all(
            [
                _binding(PriorityTier.EARLY, owner=plugin_a),
                kept,
                _binding(PriorityTier.MONITOR, owner=plugin_a),
            ]
        )

        removed = registry.unregister_owner(plugin_a)

        assert removed == 2
        assert registry.bindings() == (kept,)

    def test_unregister_owner_matches_equal_string_owner(self):
        """String owners built at runtime match by value, not identity."""
        registry = HandlerRegistry(ROOT)
        registry.register(_binding(PriorityTier.DEFAULT, owner="".join(["plug", "in"])))

        assert registry.unregister_owner("plugin") == 1
        assert len(registry) == 0

    def test_clear_returns_removed_count(self):
        registry = HandlerRegistry(ROOT)
        registry.register_all([_binding(PriorityTier.DEFAULT) for _ in range(3)])

        assert registry.clear() == 3
        assert registry.bindings() == ()

    def test_bindings_for_tier(self):
        registry = HandlerRegistry(ROOT)
        monitor = _binding(PriorityTier.MONITOR)
        registry.register_all([_binding(PriorityTier.DEFAULT), monitor])

        assert registry.bindings_for_tier(PriorityTier.MONITOR) == (monitor,)

    def test_concurrent_registration_loses_nothing(self):
        registry = HandlerRegistry(ROOT)

        def register_many():
            for _ in range(200):
                registry.register(_binding(PriorityTier.DEFAULT))

        threads = [threading.Thread(target=register_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 1600


class TestRegistryStore:
    """Test registry creation and lookup by category."""

    def test_registry_for_subcategory_is_the_declaring_registry(self):
        store = RegistryStore()

        assert store.registry_for(LEAF) is store.registry_for(ROOT)
        assert store.registry_for(LEAF).category is ROOT

    def test_registry_for_unresolvable_category_raises(self):
        with pytest.raises(CategoryResolutionError):
            RegistryStore().registry_for(ORPHAN_CHILD)

    def test_lookup_never_creates(self):
        store = RegistryStore()

        assert store.lookup(PLAYER) is None
        assert store.registries() == []

    def test_lookup_of_unresolvable_category_is_none(self):
        assert RegistryStore().lookup(ORPHAN_CHILD) is None

    def test_stores_are_independent(self):
        first, second = RegistryStore(), RegistryStore()
        first.registry_for(ROOT).register(_binding(PriorityTier.DEFAULT))

        assert second.lookup(ROOT) is None
        assert first.total_bindings() == 1

    def test_categories_lists_non_empty_registries(self):
        store = RegistryStore()
        store.registry_for(PLAYER)
        store.registry_for(ROOT).register(_binding(PriorityTier.DEFAULT))

        assert store.categories() == [ROOT]
