"""
HandlerRegistry and RegistryStore: storage for eventline bindings.

Purpose
-------
Provides ordered storage of Bindings for each declaring EventCategory, and
the per-bus store that maps categories to their registries.

Responsibilities
----------------
- Group bindings by PriorityTier, preserving insertion order within a tier
- Publish an immutable run-order snapshot for the dispatcher
- Remove bindings individually, by owner, or wholesale
- Create registries on demand for declaring categories only
- Resolve a fired event's category to its registry

Design Decisions
----------------
- **Copy-on-write snapshots**: every mutation happens under a lock and
  rebuilds a tuple in run order. ``bindings()`` hands out the tuple current
  at call time, so a dispatch in progress never sees a registry being
  mutated mid-iteration, and dispatch itself takes no lock.
- **No sorting on insert**: tiers are kept as separate lists; the snapshot
  concatenates them in tier rank order. Insertion order within a tier is
  never disturbed.
- **Store owned by the bus**: each EventManager has its own RegistryStore,
  so independent buses never share bindings.
"""

from __future__ import annotations

import threading
from typing import Any, Iterable, Optional

from eventline.core.event.category import EventCategory, resolve_declaring
from eventline.core.event.errors import CategoryResolutionError
from eventline.core.event.types import Binding, PriorityTier


class HandlerRegistry:
    """
    Ordered, tier-grouped bindings of one declaring EventCategory.

    Thread Safety
    -------------
    Mutations are serialized by an internal lock. Reads through
    ``bindings()`` are lock-free and always see a complete snapshot.

    Examples
    --------
    >>> registry = HandlerRegistry(PLAYER)
    >>> registry.register(Binding.from_executor(on_join, PriorityTier.LATE, owner))
    >>> registry.register(Binding.from_executor(on_log, PriorityTier.EARLY, owner))
    >>> [b.tier.name for b in registry.bindings()]
    ['EARLY', 'LATE']
    """

    def __init__(self, category: EventCategory) -> None:
        self._category = category
        self._by_tier: dict[PriorityTier, list[Binding]] = {}
        self._lock = threading.Lock()
        self._baked: tuple[Binding, ...] = ()

    @property
    def category(self) -> EventCategory:
        return self._category

    # ------------------------------------------------------------------ #
    # Modification
    # ------------------------------------------------------------------ #

    def _bake(self) -> None:
        # Caller holds self._lock.
        self._baked = tuple(
            binding
            for tier in PriorityTier.in_run_order()
            for binding in self._by_tier.get(tier, ())
        )

    def register(self, binding: Binding) -> None:
        with self._lock:
            self._by_tier.setdefault(binding.tier, []).append(binding)
            self._bake()

    def register_all(self, bindings: Iterable[Binding]) -> None:
        with self._lock:
            for binding in bindings:
                self._by_tier.setdefault(binding.tier, []).append(binding)
            self._bake()

    def unregister(self, binding: Binding) -> bool:
        with self._lock:
            tier_bindings = self._by_tier.get(binding.tier)
            if not tier_bindings or binding not in tier_bindings:
                return False
            tier_bindings.remove(binding)
            if not tier_bindings:
                del self._by_tier[binding.tier]
            self._bake()
            return True

    def unregister_owner(self, owner: Any) -> int:
        """Remove every binding contributed by ``owner``; returns the count."""
        with self._lock:
            removed = 0
            for tier in list(self._by_tier):
                kept = [b for b in self._by_tier[tier] if b.owner != owner]
                removed += len(self._by_tier[tier]) - len(kept)
                if kept:
                    self._by_tier[tier] = kept
                else:
                    del self._by_tier[tier]
            if removed:
                self._bake()
            return removed

    def clear(self) -> int:
        with self._lock:
            total = len(self._baked)
            self._by_tier.clear()
            self._baked = ()
            return total

    # ------------------------------------------------------------------ #
    # Retrieval
    # ------------------------------------------------------------------ #

    def bindings(self) -> tuple[Binding, ...]:
        """Snapshot of all bindings in run order."""
        return self._baked

    def bindings_for_tier(self, tier: PriorityTier) -> tuple[Binding, ...]:
        return tuple(b for b in self._baked if b.tier is tier)

    def __len__(self) -> int:
        return len(self._baked)

    def __repr__(self) -> str:
        return f"HandlerRegistry({self._category.name!r}, bindings={len(self)})"


class RegistryStore:
    """
    Mapping from declaring EventCategory to its HandlerRegistry.

    ``registry_for`` is the registration path (creates on demand and raises
    on an unresolvable category). ``lookup`` is the dispatch path (never
    creates, returns None when nothing was ever registered).
    """

    def __init__(self) -> None:
        self._registries: dict[EventCategory, HandlerRegistry] = {}
        self._lock = threading.Lock()

    def registry_for(self, category: EventCategory) -> HandlerRegistry:
        declaring = resolve_declaring(category)
        registry = self._registries.get(declaring)
        if registry is not None:
            return registry
        with self._lock:
            return self._registries.setdefault(declaring, HandlerRegistry(declaring))

    def lookup(self, category: EventCategory) -> Optional[HandlerRegistry]:
        try:
            declaring = resolve_declaring(category)
        except CategoryResolutionError:
            return None
        return self._registries.get(declaring)

    def unregister_owner(self, owner: Any) -> int:
        return sum(
            registry.unregister_owner(owner) for registry in self.registries()
        )

    def clear(self) -> int:
        return sum(registry.clear() for registry in self.registries())

    def registries(self) -> list[HandlerRegistry]:
        with self._lock:
            return list(self._registries.values())

    def categories(self) -> list[EventCategory]:
        """Declaring categories that currently hold at least one binding."""
        return [r.category for r in self.registries() if len(r)]

    def total_bindings(self) -> int:
        return sum(len(registry) for registry in self.registries())
