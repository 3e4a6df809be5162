"""
Event system for eventline.

Purpose
-------
An in-process, synchronous event bus: listeners declare handlers for event
categories, and ``EventManager.fire`` delivers each event to them in tier
order. A module-level ``event_manager`` serves hosts that need one bus.
"""

from .category import EVENT_ROOT, EventCategory, resolve_declaring
from .declarations import HandlerDeclaration, Listener, event_handler
from .dispatcher import DispatchReport, InvocationOutcome, InvocationStatus
from .errors import (
    CategoryResolutionError,
    DelegatedCategoryError,
    EventError,
    EventTypeMismatchError,
    HandlerDeclarationError,
    UnresolvedReferenceError,
)
from .event import Event
from .manager import EventManager
from .metrics import EventMetrics
from .types import Binding, EventExecutor, PriorityTier
from .setup import initialize_event_system, shutdown_event_system

# Global runtime EventManager
event_manager = EventManager()

__all__ = [
    "event_manager",
    "EventManager",
    "Event",
    "EventCategory",
    "EVENT_ROOT",
    "resolve_declaring",
    "PriorityTier",
    "Binding",
    "EventExecutor",
    "HandlerDeclaration",
    "Listener",
    "event_handler",
    "DispatchReport",
    "InvocationOutcome",
    "InvocationStatus",
    "EventMetrics",
    "EventError",
    "HandlerDeclarationError",
    "UnresolvedReferenceError",
    "DelegatedCategoryError",
    "CategoryResolutionError",
    "EventTypeMismatchError",
    "initialize_event_system",
    "shutdown_event_system",
]
