"""
Dispatcher: delivers a fired event to its registry's bindings.

Purpose
-------
Runs the dispatch loop of the eventline bus: look up the registry for the
event's category, walk its bindings in tier order, honour cancellation and
contain handler failures.

Responsibilities
----------------
- Resolve the event's category to a registry (no registry: no-op)
- Invoke bindings in ascending tier rank, insertion order within a tier
- Skip cancellation-sensitive tiers once the event is cancelled
- Isolate failures: log, record, continue
- Report what happened to every binding in a DispatchReport

Design Decisions
----------------
- **Synchronous**: handlers run on the calling thread, one after another.
  Handlers that cancel the event affect every binding after them, so the
  ordering has to be strict.
- **Cancellation read per binding**: ``event.cancelled`` is read fresh before
  each binding; a MONITOR handler later in the walk still sees the final
  state.
- **Exception, not BaseException**: any Exception a handler raises is
  contained, but KeyboardInterrupt, SystemExit and other BaseException
  subclasses propagate out of ``fire``. This is narrower than a catch-all
  over every throwable.
- **Failure reporting cannot raise**: logging a handler failure is itself
  guarded, so an exception with a broken ``__str__`` still leaves the
  remaining bindings running.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from eventline.core.event.context import event_log_context
from eventline.core.event.errors import handle_invocation_error
from eventline.core.event.event import Event
from eventline.core.event.metrics import EventMetricsRecorder
from eventline.core.event.registry import RegistryStore
from eventline.core.event.types import Binding
from eventline.core.logging.logger import get_logger

logger = get_logger(__name__)


class InvocationStatus(Enum):
    INVOKED = "invoked"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class InvocationOutcome:
    """What happened to one binding during one dispatch."""

    binding: Binding
    status: InvocationStatus
    error: Optional[Exception] = None


@dataclass(frozen=True)
class DispatchReport:
    """
    Per-call record of a dispatch.

    Examples
    --------
    >>> report = dispatcher.dispatch(PlayerJoinEvent("ada"))
    >>> report.ok
    True
    >>> [o.binding.identifier for o in report.invoked]
    ['JoinListener.on_join']
    """

    event: Event
    outcomes: tuple[InvocationOutcome, ...] = field(default_factory=tuple)

    def _with_status(self, status: InvocationStatus) -> list[InvocationOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def invoked(self) -> list[InvocationOutcome]:
        return self._with_status(InvocationStatus.INVOKED)

    @property
    def skipped(self) -> list[InvocationOutcome]:
        return self._with_status(InvocationStatus.SKIPPED)

    @property
    def failed(self) -> list[InvocationOutcome]:
        return self._with_status(InvocationStatus.FAILED)

    @property
    def ok(self) -> bool:
        """True when no handler raised."""
        return not self.failed


def _report_failure(
    event: Event,
    binding: Binding,
    exc: Exception,
    metrics: Optional[EventMetricsRecorder],
) -> None:
    try:
        handle_invocation_error(
            logger=logger,
            event=event,
            binding=binding,
            exc=exc,
            metrics=metrics,
        )
    except Exception as report_exc:
        # the failing handler must not stop delivery to the rest
        logger.error(
            "Failed to report handler failure",
            extra={
                "binding_id": binding.identifier,
                "error_type": type(exc).__name__,
                "report_error_type": type(report_exc).__name__,
            },
        )

class Dispatcher:
    """Delivers events to the bindings held in a RegistryStore."""

    def __init__(self, store: RegistryStore) -> None:
        self._store = store

    def dispatch(
        self, event: Event, *, metrics: Optional[EventMetricsRecorder] = None
    ) -> DispatchReport:
        """
        Deliver ``event`` to every applicable binding.

        Parameters
        ----------
        event:
            The fired event. Handlers may cancel it or mutate its payload.
        metrics:
            Optional recorder updated with the fire, skips and failures.

        Returns
        -------
        DispatchReport:
            One outcome per binding in the registry snapshot. Empty when no
            registry exists for the event's category.
        """
        category_name = event.category.name
        if metrics is not None:
            metrics.record_fire(category_name)

        registry = self._store.lookup(event.category)
        if registry is None:
            return DispatchReport(event=event)

        bindings = registry.bindings()
        if not bindings:
            return DispatchReport(event=event)

        outcomes: list[InvocationOutcome] = []
        with event_log_context(event):
            logger.debug(
                "Dispatching event",
                extra={"binding_count": len(bindings)},
            )
            for binding in bindings:
                if event.cancelled and not binding.tier.ignores_cancelled:
                    outcomes.append(
                        InvocationOutcome(binding, InvocationStatus.SKIPPED)
                    )
                    continue
                try:
                    binding.executor(event)
                except Exception as exc:
                    _report_failure(event, binding, exc, metrics)
                    outcomes.append(
                        InvocationOutcome(binding, InvocationStatus.FAILED, exc)
                    )
                else:
                    outcomes.append(
                        InvocationOutcome(binding, InvocationStatus.INVOKED)
                    )

        report = DispatchReport(event=event, outcomes=tuple(outcomes))
        if metrics is not None:
            metrics.record_skipped(category_name, len(report.skipped))
        return report

    def fire(
        self, event: Event, *, metrics: Optional[EventMetricsRecorder] = None
    ) -> Event:
        """Deliver ``event`` and hand it back to the caller."""
        self.dispatch(event, metrics=metrics)
        return event
