"""
Log context helpers for event dispatch.

Every record logged while an event is being delivered, including records a
handler emits itself, carries the event's name and category.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from eventline.core.logging.logger import LogContext

if TYPE_CHECKING:
    from eventline.core.event.event import Event

DISPATCH_COMPONENT = "eventline.dispatch"


def event_log_context(event: Event) -> LogContext:
    """
    Build the LogContext scoping the delivery of ``event``.

    >>> with event_log_context(PlayerJoinEvent("ada")):
    ...     logger.info("delivering")  # event_name=PlayerJoinEvent, event_category=player
    """
    return LogContext(
        component=DISPATCH_COMPONENT,
        operation="fire",
        event_name=event.event_name,
        event_category=event.category.name,
    )
