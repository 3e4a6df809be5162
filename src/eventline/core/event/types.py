"""
Core Event Types for the eventline bus.

Purpose
-------
Provides the fundamental type definitions of the dispatch engine: the
priority tiers that order delivery, the executor callable type, and the
immutable Binding produced by registration.

Priority Tiers
--------------
Tiers are ranks in run order (lower rank runs first). Each tier also states
whether it still receives events that an earlier handler cancelled:

- EARLIEST / EARLY / DEFAULT / LATE / LATEST: skipped once the event is
  cancelled.
- ``*_IGNORE_CANCELLED`` twins: same position, but always invoked.
- MONITOR: runs last, always invoked; for observation, not mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from eventline.core.event.event import Event


class PriorityTier(Enum):
    """
    Ordered delivery tiers.

    Examples
    --------
    >>> PriorityTier.EARLIEST.rank < PriorityTier.MONITOR.rank
    True
    >>> PriorityTier.MONITOR.ignores_cancelled
    True
    >>> PriorityTier.from_name("late")
    <PriorityTier.LATE: (7, False)>
    """

    EARLIEST_IGNORE_CANCELLED = (0, True)
    EARLIEST = (1, False)
    EARLY_IGNORE_CANCELLED = (2, True)
    EARLY = (3, False)
    DEFAULT_IGNORE_CANCELLED = (4, True)
    DEFAULT = (5, False)
    LATE_IGNORE_CANCELLED = (6, True)
    LATE = (7, False)
    LATEST_IGNORE_CANCELLED = (8, True)
    LATEST = (9, False)
    MONITOR = (10, True)

    def __init__(self, rank: int, ignores_cancelled: bool) -> None:
        self.rank = rank
        self.ignores_cancelled = ignores_cancelled

    @classmethod
    def from_name(cls, name: str) -> PriorityTier:
        """Parse a tier name case-insensitively; raises KeyError if unknown."""
        return cls[name.strip().upper()]

    @classmethod
    def in_run_order(cls) -> list[PriorityTier]:
        return sorted(cls, key=lambda tier: tier.rank)


# An executor receives the fired event. Its return value is ignored.
EventExecutor = Callable[["Event"], Any]


@dataclass(frozen=True, eq=False, slots=True)
class Binding:
    """
    One registered (executor, tier, owner) association.

    Bindings compare by identity: registering the same callback twice yields
    two bindings, and each is invoked once per dispatch.

    Attributes
    ----------
    executor:
        Callable invoked with the fired event.
    tier:
        PriorityTier deciding position and cancellation sensitivity.
    owner:
        Whatever component contributed the binding (plugin, module, service).
    identifier:
        Human-readable name used in logs and introspection.
    """

    executor: EventExecutor
    tier: PriorityTier
    owner: Any
    identifier: str

    @property
    def owner_name(self) -> str:
        owner = self.owner
        if owner is None:
            return "None"
        if isinstance(owner, str):
            return owner
        owner_type = owner if isinstance(owner, type) else type(owner)
        return f"{owner_type.__module__}.{owner_type.__qualname__}"

    @classmethod
    def from_executor(
        cls,
        executor: EventExecutor,
        tier: PriorityTier,
        owner: Any,
        identifier: str | None = None,
    ) -> Binding:
        """
        Build a Binding, deriving the identifier from the executor if needed.

        >>> binding = Binding.from_executor(print, PriorityTier.DEFAULT, "host")
        >>> binding.identifier
        'builtins.print'
        """
        if identifier is None:
            module = getattr(executor, "__module__", None) or "unknown"
            qualname = getattr(
                executor, "__qualname__", getattr(executor, "__name__", "executor")
            )
            identifier = f"{module}.{qualname}"

        return cls(
            executor=executor,
            tier=tier,
            owner=owner,
            identifier=identifier,
        )
