"""
EventManager: the eventline bus.

Purpose
-------
Ties a RegistryStore, a Registrar, a Dispatcher and an EventMetricsRecorder
together behind one object that hosts register listeners on and fire events
through.

Responsibilities
----------------
- Registration: ``install`` (listener objects), ``register_single`` (one
  executor), and removal by binding, by owner or wholesale
- Dispatch: ``fire`` / ``dispatch``
- Introspection: binding counts, registered categories, bindings per category
- Metrics toggles and snapshots
- Reading ``event.*`` settings from ConfigManager

Design Decisions
----------------
- **Instance-based**: every EventManager owns its own RegistryStore, so
  independent buses (one per test, one per subsystem) never share handlers.
- **Config fallback chain**: explicit argument, then ConfigManager, then the
  built-in default. A bad configured value is logged and ignored.
- **Metrics optional**: disabling metrics stops recording but keeps the
  recorder, so re-enabling resumes from the previous counts.
"""

from __future__ import annotations

from typing import Any, Optional

from eventline.core.config.manager import ConfigManager
from eventline.core.event.category import EventCategory
from eventline.core.event.dispatcher import DispatchReport, Dispatcher
from eventline.core.event.event import Event
from eventline.core.event.metrics import EventMetrics, EventMetricsRecorder
from eventline.core.event.registrar import Registrar
from eventline.core.event.registry import RegistryStore
from eventline.core.event.types import Binding, EventExecutor, PriorityTier
from eventline.core.exceptions import EventlineException
from eventline.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIER_KEY = "event.default_tier"
METRICS_ENABLED_KEY = "event.metrics_enabled"


def _as_category(value: Any) -> EventCategory:
    if isinstance(value, EventCategory):
        return value
    if isinstance(value, type) and issubclass(value, Event):
        return value.category
    raise TypeError(f"{value!r} is not an EventCategory")


class EventManager:
    """
    In-process event bus.

    Thread Safety
    -------------
    ``fire`` may be called from any thread. Registration may run concurrently
    with dispatch; an in-flight dispatch keeps the snapshot it started with.

    Examples
    --------
    >>> bus = EventManager()
    >>> bus.install(JoinListener(), owner=plugin)
    >>> event = bus.fire(PlayerJoinEvent("ada"))
    >>> event.cancelled
    False
    """

    def __init__(
        self,
        config_manager: Optional[type[ConfigManager]] = None,
        *,
        store: Optional[RegistryStore] = None,
        metrics: Optional[EventMetricsRecorder] = None,
        default_tier: Optional[PriorityTier] = None,
        enable_metrics: Optional[bool] = None,
    ) -> None:
        """
        Initialize the bus.

        Parameters
        ----------
        config_manager:
            ConfigManager class to read ``event.*`` settings from. Built-in
            defaults are used if None.
        store:
            Optional RegistryStore. A fresh one is created if None.
        metrics:
            Optional EventMetricsRecorder. A fresh one is created if None.
        default_tier:
            Tier for declarations without one. Uses config if None.
        enable_metrics:
            Whether to collect metrics. Uses config if None.
        """
        self._config_manager = config_manager
        self._store = store or RegistryStore()
        self._metrics = metrics or EventMetricsRecorder()
        self._registrar = Registrar(self._store)
        self._dispatcher = Dispatcher(self._store)

        self._default_tier_override = default_tier
        self._metrics_override = enable_metrics
        self._metrics_enabled = True
        self._apply_settings()

        logger.info(
            "EventManager initialized",
            extra={
                "default_tier": self.default_tier.name,
                "metrics_enabled": self._metrics_enabled,
            },
        )

    # ------------------------------------------------------------------ #
    # Configuration Loading
    # ------------------------------------------------------------------ #

    def _load_default_tier(self) -> PriorityTier:
        if self._default_tier_override is not None:
            return self._default_tier_override
        if self._config_manager is None:
            return PriorityTier.DEFAULT

        value = self._config_manager.get(DEFAULT_TIER_KEY, PriorityTier.DEFAULT.name)
        if isinstance(value, PriorityTier):
            return value
        try:
            return PriorityTier.from_name(str(value))
        except KeyError:
            logger.warning(
                "Unknown default tier in config, using DEFAULT",
                extra={"config_key": DEFAULT_TIER_KEY, "value": value},
            )
            return PriorityTier.DEFAULT

    def _load_metrics_enabled(self) -> bool:
        if self._metrics_override is not None:
            return bool(self._metrics_override)
        if self._config_manager is None:
            return True

        try:
            return self._config_manager.get_bool(METRICS_ENABLED_KEY, True)
        except EventlineException as exc:
            logger.warning(
                "Invalid metrics flag in config, keeping metrics enabled",
                extra={"config_key": METRICS_ENABLED_KEY, "error": str(exc)},
            )
            return True

    def _apply_settings(self) -> None:
        self._registrar.default_tier = self._load_default_tier()
        self._metrics_enabled = self._load_metrics_enabled()
        self._registrar.metrics = self._metrics if self._metrics_enabled else None

    def configure(self, config_manager: type[ConfigManager]) -> None:
        """
        Re-read ``event.*`` settings from ``config_manager``.

        Explicit constructor arguments keep precedence over config values.
        Already installed bindings keep the tier they were registered with.
        """
        self._config_manager = config_manager
        self._apply_settings()
        logger.info(
            "EventManager reconfigured",
            extra={
                "default_tier": self.default_tier.name,
                "metrics_enabled": self._metrics_enabled,
            },
        )

    @property
    def default_tier(self) -> PriorityTier:
        return self._registrar.default_tier

    @property
    def store(self) -> RegistryStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Registration API
    # ------------------------------------------------------------------ #

    def install(self, listener: Any, owner: Any) -> list[Binding]:
        """
        Register every handler ``listener`` declares, on behalf of ``owner``.

        Malformed declarations are logged and skipped; a listener with an
        unresolvable type reference is skipped entirely.

        Parameters
        ----------
        listener:
            Object exposing ``event_handlers()``, usually a ``Listener``.
        owner:
            The component contributing the handlers; used for logs and for
            ``unregister_owner``.

        Returns
        -------
        list[Binding]:
            The installed bindings, in declaration order.

        Raises
        ------
        CategoryResolutionError:
            If a declared category has no declaring ancestor.
        """
        return self._registrar.install(listener, owner)

    register_events = install

    def register_single(
        self,
        category: Any,
        tier: PriorityTier,
        executor: EventExecutor,
        owner: Any,
    ) -> Binding:
        """
        Register one executor for ``category`` at ``tier``.

        ``category`` may be an EventCategory or an Event subclass. A
        delegating sub-category registers with its declaring ancestor.

        Raises
        ------
        CategoryResolutionError:
            If no ancestor of ``category`` declares a registry.
        """
        return self._registrar.register_single(category, tier, executor, owner)

    register_event = register_single

    def unregister(self, binding: Binding) -> bool:
        """Remove one binding. Returns False if it was not installed."""
        for registry in self._store.registries():
            if registry.unregister(binding):
                if self._metrics_enabled:
                    self._metrics.adjust_binding_count(-1)
                logger.debug(
                    "Unregistered binding",
                    extra={
                        "event_category": registry.category.name,
                        "binding_id": binding.identifier,
                    },
                )
                return True
        return False

    def unregister_owner(self, owner: Any) -> int:
        """
        Remove every binding contributed by ``owner``.

        Returns
        -------
        int:
            Number of bindings removed.
        """
        removed = self._store.unregister_owner(owner)
        if removed and self._metrics_enabled:
            self._metrics.adjust_binding_count(-removed)
        logger.info(
            "Unregistered owner bindings",
            extra={"owner": repr(owner), "removed_count": removed},
        )
        return removed

    def clear(self) -> int:
        """Remove all bindings from all categories; returns how many."""
        total = self._store.clear()
        if self._metrics_enabled:
            self._metrics.set_binding_count(0)
        logger.info(
            "EventManager cleared all bindings",
            extra={"previous_binding_count": total},
        )
        return total

    # ------------------------------------------------------------------ #
    # Dispatch API
    # ------------------------------------------------------------------ #

    def dispatch(self, event: Event) -> DispatchReport:
        """
        Deliver ``event`` and report the outcome of every binding.

        Handler failures are logged and recorded in the report; they never
        propagate to the caller.
        """
        return self._dispatcher.dispatch(
            event, metrics=self._metrics if self._metrics_enabled else None
        )

    def fire(self, event: Event) -> Event:
        """
        Deliver ``event`` to every applicable handler and return it.

        Examples
        --------
        >>> event = bus.fire(PlayerChatEvent("ada", "hi"))
        >>> if not event.cancelled:
        ...     broadcast(event.message)
        """
        self.dispatch(event)
        return event

    # ------------------------------------------------------------------ #
    # Metrics & Introspection
    # ------------------------------------------------------------------ #

    def get_binding_count(self, category: Any = None) -> int:
        """
        Number of installed bindings.

        With ``category``, counts the bindings that would see an event of
        that category (those of its declaring registry).
        """
        if category is None:
            return self._store.total_bindings()
        registry = self._store.lookup(_as_category(category))
        return len(registry) if registry is not None else 0

    def get_registered_categories(self) -> list[EventCategory]:
        """Declaring categories holding at least one binding, sorted by name."""
        return sorted(self._store.categories(), key=lambda c: c.name)

    def get_bindings(self, category: Any) -> tuple[Binding, ...]:
        """Run-order snapshot of the bindings an event of ``category`` reaches."""
        registry = self._store.lookup(_as_category(category))
        return registry.bindings() if registry is not None else ()

    def get_metrics(self) -> Optional[EventMetrics]:
        """Metrics snapshot if metrics are enabled, None otherwise."""
        if not self._metrics_enabled:
            return None
        return self._metrics.snapshot()

    def get_metrics_summary(self) -> dict[str, Any]:
        metrics = self.get_metrics()
        if metrics is None:
            return {}
        return metrics.get_summary()

    # ------------------------------------------------------------------ #
    # Configuration Toggles
    # ------------------------------------------------------------------ #

    @property
    def metrics_enabled(self) -> bool:
        return self._metrics_enabled

    def enable_metrics(self) -> None:
        self._metrics_enabled = True
        self._registrar.metrics = self._metrics
        self._metrics.set_binding_count(self._store.total_bindings())
        logger.info("EventManager: metrics enabled")

    def disable_metrics(self) -> None:
        self._metrics_enabled = False
        self._registrar.metrics = None
        logger.info("EventManager: metrics disabled")
