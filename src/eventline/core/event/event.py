"""
Base event class.

Concrete events subclass ``Event`` and set ``category``; payload fields are
plain attributes (dataclass subclasses work out of the box).

>>> PLAYER = EventCategory("player", declares_registry=True)
>>> @dataclass
... class PlayerJoinEvent(Event):
...     category = PLAYER
...     name: str
>>> event = PlayerJoinEvent("ada")
>>> event.cancel()
>>> event.cancelled
True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from eventline.core.event.category import EVENT_ROOT, EventCategory


@dataclass
class Event:
    """Something that happened; fired through an EventManager."""

    category: ClassVar[EventCategory] = EVENT_ROOT

    cancelled: bool = field(default=False, init=False, compare=False)

    @property
    def event_name(self) -> str:
        return type(self).__name__

    def cancel(self) -> None:
        self.cancelled = True

    def set_cancelled(self, cancelled: bool) -> None:
        self.cancelled = bool(cancelled)

    def is_cancelled(self) -> bool:
        return self.cancelled
