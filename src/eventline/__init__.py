"""
eventline: an in-process event dispatch bus.

>>> from eventline import EventManager, Event, EventCategory, PriorityTier
"""

from eventline.core.event import (
    EVENT_ROOT,
    Binding,
    DispatchReport,
    Event,
    EventCategory,
    EventManager,
    HandlerDeclaration,
    Listener,
    PriorityTier,
    event_handler,
    event_manager,
)

__version__ = "1.0.0"

__all__ = [
    "EVENT_ROOT",
    "Binding",
    "DispatchReport",
    "Event",
    "EventCategory",
    "EventManager",
    "HandlerDeclaration",
    "Listener",
    "PriorityTier",
    "event_handler",
    "event_manager",
    "__version__",
]
