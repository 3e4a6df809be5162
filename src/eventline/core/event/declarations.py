"""
Handler declarations: how a listener tells the registrar what it handles.

A listener is any object with an ``event_handlers()`` method returning
``HandlerDeclaration`` entries. Two ways to produce them:

1. Return an explicit table::

       class AuditListener:
           def event_handlers(self):
               return [
                   HandlerDeclaration(self.record, category=PLAYER,
                                      tier=PriorityTier.MONITOR),
               ]

2. Subclass ``Listener`` and mark methods with ``event_handler``; the event
   type comes from the parameter annotation::

       class JoinListener(Listener):
           @event_handler(tier=PriorityTier.EARLY)
           def on_join(self, event: PlayerJoinEvent) -> None:
               ...

Declarations are not validated here; the registrar checks each one and
rejects malformed entries individually.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar, overload

from eventline.core.event.types import PriorityTier

HANDLER_MARKER = "__eventline_handler__"

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True, slots=True)
class HandlerDeclaration:
    """
    One declared handler.

    Attributes
    ----------
    callback:
        Callable taking exactly one event argument.
    category:
        Explicit EventCategory, or an Event subclass standing for its
        category. If None, the category of the Event subclass annotated on
        the callback's parameter is used.
    tier:
        PriorityTier; None means the bus's configured default tier.
    name:
        Optional identifier for logs; derived from the callback if None.
    """

    callback: Callable[..., Any]
    category: Any = None
    tier: Any = None
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class _HandlerMarker:
    category: Any
    tier: Any


@overload
def event_handler(func: F) -> F: ...


@overload
def event_handler(
    category: Any = None, *, tier: Optional[PriorityTier] = None
) -> Callable[[F], F]: ...


def event_handler(category: Any = None, *, tier: Optional[PriorityTier] = None):
    """
    Mark a method as an event handler.

    Usable bare (``@event_handler``) or with arguments
    (``@event_handler(PLAYER, tier=PriorityTier.LATE)``). ``category`` may
    also be an Event subclass, standing for that class's category.
    """
    if callable(category) and not isinstance(category, type):
        func = category
        setattr(func, HANDLER_MARKER, _HandlerMarker(category=None, tier=None))
        return func

    def decorator(func: F) -> F:
        setattr(func, HANDLER_MARKER, _HandlerMarker(category=category, tier=tier))
        return func

    return decorator


def iter_marked_handlers(obj: Any) -> Iterator[HandlerDeclaration]:
    """
    Yield declarations for every ``event_handler``-marked method of ``obj``.

    Walks the class MRO so inherited handlers are included; an override in a
    subclass replaces the inherited method (marked or not).
    """
    seen: set[str] = set()
    for klass in type(obj).__mro__:
        for attr_name, attr in vars(klass).items():
            if attr_name in seen:
                continue
            seen.add(attr_name)
            marker = getattr(attr, HANDLER_MARKER, None)
            if not isinstance(marker, _HandlerMarker):
                continue
            yield HandlerDeclaration(
                callback=getattr(obj, attr_name),
                category=marker.category,
                tier=marker.tier,
                name=f"{type(obj).__qualname__}.{attr_name}",
            )


class Listener:
    """Base class whose handlers are the ``event_handler``-marked methods."""

    def event_handlers(self) -> Iterable[HandlerDeclaration]:
        return list(iter_marked_handlers(self))
