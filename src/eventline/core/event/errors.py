"""
Error types and error-handling helpers for the eventline engine.

Purpose
-------
Defines the exceptions raised or logged by registration and dispatch, and the
centralized helpers that log them with consistent structured context.

Exception Hierarchy
-------------------
EventlineException
└── EventError
    ├── HandlerDeclarationError   malformed handler declaration (skipped)
    ├── UnresolvedReferenceError  dangling type reference (listener aborted)
    ├── DelegatedCategoryError    registration against a non-declaring category
    ├── CategoryResolutionError   no declaring ancestor (raised to registrant)
    └── EventTypeMismatchError    executor received the wrong event type

Only CategoryResolutionError and EventTypeMismatchError are ever raised out
of the engine; the others are constructed for their structured ``to_dict()``
and logged where they are detected.
"""

from __future__ import annotations

from logging import Logger
from typing import TYPE_CHECKING, Any, Optional

from eventline.core.exceptions import ErrorSeverity, EventlineException

if TYPE_CHECKING:
    from eventline.core.event.event import Event
    from eventline.core.event.metrics import EventMetricsRecorder
    from eventline.core.event.types import Binding


class EventError(EventlineException):
    """Base class for registration and dispatch errors."""


class HandlerDeclarationError(EventError):
    """A handler declaration has the wrong shape (arity, type or tier)."""

    def __init__(self, handler: str, reason: str, listener: str) -> None:
        self.handler = handler
        self.reason = reason
        super().__init__(
            f"Rejected handler {handler} on {listener}: {reason}",
            details={"handler": handler, "listener": listener, "reason": reason},
            error_code="HANDLER_DECLARATION_ERROR",
        )


class UnresolvedReferenceError(EventError):
    """A listener refers to an event type that cannot be resolved."""

    def __init__(self, listener: str, owner: str, reference: str) -> None:
        self.reference = reference
        super().__init__(
            f"{owner} is attempting to register event type {reference}, which "
            f"does not exist. Ignoring events registered in {listener}",
            details={"listener": listener, "owner": owner, "reference": reference},
            error_code="UNRESOLVED_REFERENCE",
        )


class DelegatedCategoryError(EventError):
    """Registration targeted a category that delegates its registry."""

    def __init__(self, category: str, declaring: str, owner: str) -> None:
        self.category = category
        self.declaring = declaring
        super().__init__(
            f"{owner} attempted to register delegated event category "
            f"{category}. It should be using {declaring}!",
            details={"category": category, "declaring": declaring, "owner": owner},
            error_code="DELEGATED_CATEGORY",
        )


class CategoryResolutionError(EventError):
    """No ancestor of the category declares a registry."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, category: str) -> None:
        self.category = category
        super().__init__(
            f"Unable to find handler registry for event category {category}",
            details={"category": category},
            error_code="CATEGORY_RESOLUTION",
        )


class EventTypeMismatchError(EventError):
    """An executor was handed an event its handler was not declared for."""

    def __init__(self, handler: str, expected: str, received: str) -> None:
        super().__init__(
            "Wrong event type passed to registered handler",
            details={"handler": handler, "expected": expected, "received": received},
            error_code="EVENT_TYPE_MISMATCH",
        )


def log_registration_error(logger: Logger, error: EventError, **context: Any) -> None:
    """Log a recovered registration-time error with its structured details."""
    # "message" is a reserved LogRecord attribute and cannot go into extra.
    payload = {k: v for k, v in error.to_dict().items() if k != "message"}
    logger.error(error.message, extra={**payload, **context})


def _safe_str(exc: BaseException) -> str:
    """``str(exc)``, falling back to ``repr`` or the type name when it fails."""
    for render in (str, repr):
        try:
            return render(exc)
        except Exception:
            continue
    return f"<unprintable {type(exc).__name__}>"

def handle_invocation_error(
    *,
    logger: Logger,
    event: Event,
    binding: Binding,
    exc: Exception,
    metrics: Optional[EventMetricsRecorder],
) -> None:
    """
    Log a handler failure during dispatch and update metrics.

    Never raises. Logs the event family, the failing binding and its owner,
    with the traceback attached.
    """
    category_name = event.category.name

    if metrics is not None:
        metrics.record_error(category_name)

    logger.error(
        f"Could not pass event {event.event_name} to {binding.owner_name}",
        extra={
            "event_name": event.event_name,
            "event_category": category_name,
            "binding_id": binding.identifier,
            "owner": binding.owner_name,
            "tier": binding.tier.name,
            "error": _safe_str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=exc,
    )
