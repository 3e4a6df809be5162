"""
Event category tree.

Every event belongs to an EventCategory. Categories form a tree rooted at
``EVENT_ROOT``; a category either declares its own handler registry or
delegates to the nearest ancestor that does. Family roots (direct children of
``EVENT_ROOT``) are expected to declare one.

>>> PLAYER = EventCategory("player", declares_registry=True)
>>> PLAYER_JOIN = EventCategory("player.join", parent=PLAYER)
>>> resolve_declaring(PLAYER_JOIN) is PLAYER
True
"""

from __future__ import annotations

from typing import Iterator, Optional

from eventline.core.event.errors import CategoryResolutionError

_UNRESOLVED = object()


class EventCategory:
    """
    Descriptor for one family of events.

    The parent link and the ``declares_registry`` flag are fixed at creation,
    which keeps the tree cycle-free and lets resolution be memoized.
    """

    __slots__ = ("name", "parent", "declares_registry", "_declaring")

    def __init__(
        self,
        name: str,
        parent: Optional[EventCategory] = None,
        *,
        declares_registry: bool = False,
    ) -> None:
        if not name:
            raise ValueError("EventCategory name must be a non-empty string")
        if parent is None:
            parent = EVENT_ROOT
        self.name = name
        self.parent = parent
        self.declares_registry = declares_registry
        self._declaring: object = _UNRESOLVED

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def ancestors(self) -> Iterator[EventCategory]:
        """Yield parent, grandparent, ... up to and including EVENT_ROOT."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def is_a(self, other: EventCategory) -> bool:
        """True if ``other`` is this category or one of its ancestors."""
        if self is other:
            return True
        return any(ancestor is other for ancestor in self.ancestors())

    def __repr__(self) -> str:
        flag = ", declares_registry=True" if self.declares_registry else ""
        return f"EventCategory({self.name!r}{flag})"

    def __str__(self) -> str:
        return self.name

    @classmethod
    def _new_root(cls, name: str) -> EventCategory:
        root = cls.__new__(cls)
        root.name = name
        root.parent = None
        root.declares_registry = False
        root._declaring = _UNRESOLVED
        return root


# Absolute root of every category tree. Never declares a registry.
EVENT_ROOT = EventCategory._new_root("event")


def resolve_declaring(category: EventCategory) -> EventCategory:
    """
    Return the category whose registry ``category`` uses.

    Walks from ``category`` towards the root and returns the first category
    that declares a registry. Raises CategoryResolutionError when the walk
    reaches EVENT_ROOT without finding one.
    """
    cached = category._declaring
    if cached is not _UNRESOLVED:
        return cached  # type: ignore[return-value]

    current: Optional[EventCategory] = category
    while current is not None and current is not EVENT_ROOT:
        if current.declares_registry:
            category._declaring = current
            return current
        current = current.parent

    raise CategoryResolutionError(category.name)
