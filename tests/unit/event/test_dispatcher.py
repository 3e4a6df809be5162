"""
Unit tests for event dispatch.

Covers tier ordering, the cancellation filter, category delegation, failure
isolation, the no-listener no-op and the per-call DispatchReport.
"""

import logging

import pytest

from eventline.core.event import EventTypeMismatchError, InvocationStatus, PriorityTier
from eventline.core.event.dispatcher import Dispatcher
from eventline.core.event.metrics import EventMetricsRecorder
from eventline.core.event.registrar import Registrar
from eventline.core.event.registry import RegistryStore
from tests.unit.event.sample_events import (
    LEAF,
    PLAYER,
    ROOT,
    CancellingListener,
    LeafEvent,
    OrphanEvent,
    PlayerJoinEvent,
    RecordingListener,
    RootEvent,
)


@pytest.fixture
def store() -> RegistryStore:
    return RegistryStore()


@pytest.fixture
def registrar(store) -> Registrar:
    return Registrar(store)


@pytest.fixture
def dispatcher(store) -> Dispatcher:
    return Dispatcher(store)


def _append(calls: list[str], label: str):
    def executor(event):
        calls.append(label)

    executor.__qualname__ = label
    return executor


class TestOrdering:
    """Test delivery order across and within tiers."""

    def test_tiers_run_in_rank_order(self, registrar, dispatcher, calls):
        for tier in reversed(PriorityTier.in_run_order()):
            registrar.register_single(ROOT, tier, _append(calls, tier.name), "host")

        dispatcher.fire(RootEvent())

        assert calls == [tier.name for tier in PriorityTier.in_run_order()]

    def test_same_tier_runs_in_registration_order(self, registrar, dispatcher, calls):
        for label in ("a", "b", "c"):
            registrar.register_single(ROOT, PriorityTier.DEFAULT, _append(calls, label), "host")

        dispatcher.fire(RootEvent())

        assert calls == ["a", "b", "c"]

    def test_each_binding_invoked_exactly_once(self, registrar, dispatcher, calls):
        registrar.install(RecordingListener(calls), "host")

        report = dispatcher.dispatch(RootEvent())

        assert calls == ["earliest", "default", "monitor:False"]
        assert len(report.invoked) == 3


class TestCancellation:
    """Test the cancellation filter applied before each binding."""

    def test_cancelled_event_skips_sensitive_tiers(self, registrar, dispatcher, calls):
        registrar.install(CancellingListener(calls), "host")
        registrar.install(RecordingListener(calls), "host")

        event = dispatcher.fire(RootEvent())

        # CancellingListener.veto and RecordingListener.first share EARLIEST;
        # veto was registered first, so first is skipped too.
        assert calls == ["veto", "monitor:True"]
        assert event.cancelled

    def test_ignore_cancelled_tiers_still_run(self, registrar, dispatcher, calls):
        registrar.register_single(ROOT, PriorityTier.EARLIEST, lambda e: e.cancel(), "host")
        for tier in (
            PriorityTier.EARLY,
            PriorityTier.EARLY_IGNORE_CANCELLED,
            PriorityTier.LATEST_IGNORE_CANCELLED,
            PriorityTier.LATEST,
        ):
            registrar.register_single(ROOT, tier, _append(calls, tier.name), "host")

        dispatcher.fire(RootEvent())

        assert calls == ["EARLY_IGNORE_CANCELLED", "LATEST_IGNORE_CANCELLED"]

    def test_uncancel_reenables_later_tiers(self, registrar, dispatcher, calls):
        """Cancellation is read fresh before every binding."""
        registrar.register_single(ROOT, PriorityTier.EARLIEST, lambda e: e.cancel(), "host")
        registrar.register_single(
            ROOT,
            PriorityTier.DEFAULT_IGNORE_CANCELLED,
            lambda e: e.set_cancelled(False),
            "host",
        )
        registrar.register_single(ROOT, PriorityTier.EARLY, _append(calls, "early"), "host")
        registrar.register_single(ROOT, PriorityTier.LATE, _append(calls, "late"), "host")

        event = dispatcher.fire(RootEvent())

        assert calls == ["late"]
        assert not event.is_cancelled()

    def test_pre_cancelled_event_reaches_only_ignoring_tiers(
        self, registrar, dispatcher, calls
    ):
        registrar.install(RecordingListener(calls), "host")
        event = RootEvent()
        event.cancel()

        report = dispatcher.dispatch(event)

        assert calls == ["monitor:True"]
        assert len(report.skipped) == 2


class TestDelegation:
    """Test that sub-category events reach the declaring registry."""

    def test_leaf_event_reaches_root_handlers(self, registrar, dispatcher, calls):
        registrar.install(RecordingListener(calls), "host")

        dispatcher.fire(LeafEvent())

        assert calls == ["earliest", "default", "monitor:False"]

    def test_handlers_registered_on_leaf_see_root_events(self, registrar, dispatcher, calls):
        """register_single(LEAF) shares ROOT's registry, so RootEvents reach it too."""
        registrar.register_single(LEAF, PriorityTier.DEFAULT, _append(calls, "leaf"), "host")

        dispatcher.fire(RootEvent())

        assert calls == ["leaf"]


class TestFailureIsolation:
    """Test that a failing handler never stops dispatch or reaches the caller."""

    def test_failure_is_logged_and_dispatch_continues(self, registrar, dispatcher, calls, caplog):
        def explode(event):
            raise RuntimeError("boom")

        registrar.register_single(ROOT, PriorityTier.EARLY, _append(calls, "before"), "host")
        registrar.register_single(ROOT, PriorityTier.DEFAULT, explode, "faulty-plugin")
        registrar.register_single(ROOT, PriorityTier.LATE, _append(calls, "after"), "host")

        with caplog.at_level(logging.ERROR, logger="eventline"):
            report = dispatcher.dispatch(RootEvent())

        assert calls == ["before", "after"]
        assert not report.ok
        (failure,) = report.failed
        assert isinstance(failure.error, RuntimeError)

        (record,) = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert record.getMessage() == "Could not pass event RootEvent to faulty-plugin"
        assert record.event_category == "root"
        assert record.owner == "faulty-plugin"
        assert record.error_type == "RuntimeError"
        assert record.exc_info is not None

    def test_type_mismatch_is_contained(self, registrar, dispatcher, calls):
        """An executor handed a foreign event fails like any other handler."""
        (guarded,) = registrar.discover(CancellingListener(calls), "host")[ROOT]
        registrar.register_single(PLAYER, PriorityTier.DEFAULT, guarded.executor, "host")
        registrar.register_single(PLAYER, PriorityTier.MONITOR, _append(calls, "monitor"), "host")

        report = dispatcher.dispatch(PlayerJoinEvent())

        (failure,) = report.failed
        assert isinstance(failure.error, EventTypeMismatchError)
        assert calls == ["monitor"]

    def test_unprintable_exception_is_contained(self, registrar, dispatcher, calls, caplog):
        """A handler error whose __str__ raises still leaves later bindings running."""

        class UnprintableError(Exception):
            def __str__(self):
                raise RuntimeError("broken __str__")

        def explode(event):
            raise UnprintableError()

        registrar.register_single(ROOT, PriorityTier.EARLY, explode, "faulty-plugin")
        registrar.register_single(ROOT, PriorityTier.LATE, _append(calls, "after"), "host")

        with caplog.at_level(logging.ERROR, logger="eventline"):
            report = dispatcher.dispatch(RootEvent())

        assert calls == ["after"]
        (failure,) = report.failed
        assert isinstance(failure.error, UnprintableError)
        (record,) = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert record.error_type == "UnprintableError"
        assert record.error == "UnprintableError()"

    def test_base_exceptions_propagate(self, registrar, dispatcher):
        def interrupt(event):
            raise KeyboardInterrupt

        registrar.register_single(ROOT, PriorityTier.DEFAULT, interrupt, "host")

        with pytest.raises(KeyboardInterrupt):
            dispatcher.fire(RootEvent())

    def test_failure_recorded_in_metrics(self, registrar, dispatcher):
        metrics = EventMetricsRecorder()

        def explode(event):
            raise ValueError("bad")

        registrar.register_single(ROOT, PriorityTier.DEFAULT, explode, "host")
        dispatcher.dispatch(RootEvent(), metrics=metrics)

        snapshot = metrics.snapshot()
        assert snapshot.handler_errors == {"root": 1}
        assert snapshot.events_fired == {"root": 1}


class TestNoListeners:
    """Test firing events nobody listens to."""

    def test_no_registry_is_a_no_op(self, dispatcher):
        event = PlayerJoinEvent()

        report = dispatcher.dispatch(event)

        assert report.outcomes == ()
        assert report.ok
        assert not event.cancelled

    def test_unresolvable_category_is_a_no_op(self, dispatcher):
        assert dispatcher.dispatch(OrphanEvent()).outcomes == ()

    def test_fire_returns_the_same_event(self, dispatcher):
        event = RootEvent("payload")
        assert dispatcher.fire(event) is event


class TestDispatchReport:
    """Test the per-call outcome record."""

    def test_outcomes_follow_run_order(self, registrar, dispatcher, calls):
        registrar.install(CancellingListener(calls), "host")
        registrar.install(RecordingListener(calls), "host")

        report = dispatcher.dispatch(RootEvent())

        assert [o.status for o in report.outcomes] == [
            InvocationStatus.INVOKED,  # veto
            InvocationStatus.SKIPPED,  # first
            InvocationStatus.SKIPPED,  # middle
            InvocationStatus.INVOKED,  # watch (MONITOR)
        ]
        assert report.outcomes[0].error is None

    def test_skips_recorded_in_metrics(self, registrar, dispatcher, calls):
        metrics = EventMetricsRecorder()
        registrar.install(CancellingListener(calls), "host")
        registrar.install(RecordingListener(calls), "host")

        dispatcher.dispatch(RootEvent(), metrics=metrics)

        assert metrics.snapshot().handlers_skipped == {"root": 2}


class TestDispatchLogContext:
    """Test that handlers log inside the event's log context."""

    def test_handler_sees_event_context(self, registrar, dispatcher):
        from eventline.core.logging.logger import get_log_context

        seen: dict = {}
        registrar.register_single(
            ROOT, PriorityTier.DEFAULT, lambda event: seen.update(get_log_context()), "host"
        )

        dispatcher.fire(LeafEvent())

        assert seen["event_name"] == "LeafEvent"
        assert seen["event_category"] == "root.leaf"
        assert seen["component"] == "eventline.dispatch"

    def test_context_restored_after_dispatch(self, registrar, dispatcher):
        from eventline.core.logging.logger import get_log_context

        registrar.register_single(ROOT, PriorityTier.DEFAULT, lambda event: None, "host")

        dispatcher.fire(RootEvent())

        assert "event_name" not in get_log_context()
