"""
EventMetrics and EventMetricsRecorder for the eventline bus.

Purpose
-------
Counters for observing an EventManager: how often each event category was
fired, how many handlers failed or were skipped because of cancellation, how
many bindings are installed and how many declarations were rejected.

Design Decisions
----------------
- **Immutable snapshots**: EventMetrics is frozen; mutations go through the
  recorder.
- **Lock-protected recorder**: ``fire`` may run on any thread, so every
  counter update happens under one lock.
- **Keyed by category name**: the category, not the concrete event class, is
  the unit handlers subscribe to.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EventMetrics:
    """
    Immutable snapshot of bus metrics.

    Attributes
    ----------
    events_fired:
        Mapping of category names to fire counts.
    handler_errors:
        Mapping of category names to handler failure counts.
    handlers_skipped:
        Mapping of category names to bindings skipped because the event was
        cancelled.
    total_bindings:
        Bindings currently installed through the recorder's manager.
    rejected_declarations:
        Handler declarations refused at registration.
    rejected_listeners:
        Listeners skipped entirely because of an unresolvable reference.

    Examples
    --------
    >>> metrics = EventMetrics(
    ...     events_fired={"player": 40},
    ...     handler_errors={"player": 2},
    ...     total_bindings=10,
    ... )
    >>> metrics.get_summary()["error_rate"]
    5.0
    """

    events_fired: dict[str, int] = field(default_factory=dict)
    handler_errors: dict[str, int] = field(default_factory=dict)
    handlers_skipped: dict[str, int] = field(default_factory=dict)
    total_bindings: int = 0
    rejected_declarations: int = 0
    rejected_listeners: int = 0

    def get_summary(self) -> dict[str, Any]:
        """
        Generate a formatted summary of metrics.

        Returns
        -------
        dict[str, Any]:
            - total_events_fired / events_by_category
            - total_errors / errors_by_category
            - total_skipped
            - total_bindings, rejected_declarations, rejected_listeners
            - error_rate: failures per hundred fired events (0-100+)
        """
        total_events = sum(self.events_fired.values())
        total_errors = sum(self.handler_errors.values())

        error_rate = (total_errors / max(1, total_events)) * 100.0

        return {
            "total_events_fired": total_events,
            "events_by_category": dict(self.events_fired),
            "total_errors": total_errors,
            "errors_by_category": dict(self.handler_errors),
            "total_skipped": sum(self.handlers_skipped.values()),
            "total_bindings": self.total_bindings,
            "rejected_declarations": self.rejected_declarations,
            "rejected_listeners": self.rejected_listeners,
            "error_rate": round(error_rate, 2),
        }


class EventMetricsRecorder:
    """
    Mutable, thread-safe metrics recorder.

    Examples
    --------
    >>> recorder = EventMetricsRecorder()
    >>> recorder.record_fire("player")
    >>> recorder.record_error("player")
    >>> recorder.adjust_binding_count(3)
    >>> recorder.snapshot().total_bindings
    3
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events_fired: defaultdict[str, int] = defaultdict(int)
        self._handler_errors: defaultdict[str, int] = defaultdict(int)
        self._handlers_skipped: defaultdict[str, int] = defaultdict(int)
        self._total_bindings = 0
        self._rejected_declarations = 0
        self._rejected_listeners = 0

    def record_fire(self, category_name: str) -> None:
        with self._lock:
            self._events_fired[category_name] += 1

    def record_error(self, category_name: str) -> None:
        with self._lock:
            self._handler_errors[category_name] += 1

    def record_skipped(self, category_name: str, count: int = 1) -> None:
        if count <= 0:
            return
        with self._lock:
            self._handlers_skipped[category_name] += count

    def record_rejected_declaration(self, count: int = 1) -> None:
        with self._lock:
            self._rejected_declarations += count

    def record_rejected_listener(self) -> None:
        with self._lock:
            self._rejected_listeners += 1

    @property
    def total_bindings(self) -> int:
        return self._total_bindings

    def adjust_binding_count(self, delta: int) -> None:
        """
        Adjust the installed binding count by ``delta``.

        The count is clamped to 0 (never goes negative).
        """
        with self._lock:
            self._total_bindings = max(0, self._total_bindings + delta)

    def set_binding_count(self, count: int) -> None:
        with self._lock:
            self._total_bindings = max(0, count)

    def reset(self) -> None:
        """Zero every counter."""
        with self._lock:
            self._events_fired.clear()
            self._handler_errors.clear()
            self._handlers_skipped.clear()
            self._total_bindings = 0
            self._rejected_declarations = 0
            self._rejected_listeners = 0

    def snapshot(self) -> EventMetrics:
        """Return an immutable copy of the current counters."""
        with self._lock:
            return EventMetrics(
                events_fired=dict(self._events_fired),
                handler_errors=dict(self._handler_errors),
                handlers_skipped=dict(self._handlers_skipped),
                total_bindings=self._total_bindings,
                rejected_declarations=self._rejected_declarations,
                rejected_listeners=self._rejected_listeners,
            )
