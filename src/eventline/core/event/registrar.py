"""
Registrar: turns listener declarations into installed Bindings.

Purpose
-------
Inspects a listener's handler declarations, validates each one, wraps the
valid ones in type-checking executors and installs the resulting Bindings in
the registry of the right declaring category.

Responsibilities
----------------
- ``discover``: declarations -> {category: [Binding, ...]}
  - malformed declaration: logged, skipped, siblings still processed
  - dangling type reference: whole listener skipped, one log entry
- ``install``: discover, resolve every category up front, reject groups
  registered against a delegating sub-category, install the rest
- ``register_single``: install one executor directly, no discovery

Design Decisions
----------------
- **Declaration order is kept**: bindings of one listener land in their tier
  in the order the listener declared them.
- **Resolve before install**: a CategoryResolutionError is raised before any
  binding of the listener is installed, so a broken hierarchy never leaves a
  half-registered listener behind.
- **Identity bindings**: registering the same listener twice installs two
  sets of bindings. Callers that need deduplication unregister first.
"""

from __future__ import annotations

import inspect
import typing
from typing import Any, Callable, Optional

from eventline.core.event.category import EventCategory, resolve_declaring
from eventline.core.event.declarations import HandlerDeclaration
from eventline.core.event.errors import (
    DelegatedCategoryError,
    EventTypeMismatchError,
    HandlerDeclarationError,
    UnresolvedReferenceError,
    log_registration_error,
)
from eventline.core.event.event import Event
from eventline.core.event.metrics import EventMetricsRecorder
from eventline.core.event.registry import RegistryStore
from eventline.core.event.types import Binding, EventExecutor, PriorityTier
from eventline.core.logging.logger import get_logger

logger = get_logger(__name__)

_NO_ANNOTATION = inspect.Parameter.empty


def _qualified_name(obj: Any) -> str:
    if isinstance(obj, str):
        return obj
    klass = obj if isinstance(obj, type) else type(obj)
    return f"{klass.__module__}.{klass.__qualname__}"


def _callback_name(declaration: HandlerDeclaration) -> str:
    if declaration.name:
        return declaration.name
    callback = declaration.callback
    return getattr(callback, "__qualname__", None) or getattr(
        callback, "__name__", repr(callback)
    )


def _as_category(value: Any) -> Optional[EventCategory]:
    if isinstance(value, EventCategory):
        return value
    if isinstance(value, type) and issubclass(value, Event):
        return value.category
    return None


def _is_event_type(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, Event)


_POSITIONAL_KINDS = frozenset(
    {
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    }
)


def _single_parameter(callback: Callable[..., Any]) -> tuple[Optional[int], Optional[inspect.Parameter]]:
    """
    Return (parameter count, the parameter if there is exactly one).

    Callables without an introspectable signature report (None, None) and
    are trusted, like built-ins.
    """
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return None, None
    params = list(signature.parameters.values())
    if len(params) != 1:
        return len(params), None
    return 1, params[0]


def _parameter_annotation(callback: Callable[..., Any], parameter: inspect.Parameter) -> Any:
    """
    Evaluate the annotation of ``parameter``.

    String annotations are evaluated in the callback's module, so a
    reference to a name that does not exist raises NameError here.
    """
    if parameter.annotation is _NO_ANNOTATION:
        return _NO_ANNOTATION
    target = inspect.unwrap(getattr(callback, "__func__", callback))
    try:
        hints = typing.get_type_hints(target)
    except TypeError:
        # Not a function/method (callable instance, partial): use the raw value.
        return parameter.annotation
    return hints.get(parameter.name, parameter.annotation)


class _Resolved:
    """A declaration together with what the reference pass found out."""

    __slots__ = ("declaration", "param_count", "annotation", "parameter")

    def __init__(
        self,
        declaration: HandlerDeclaration,
        param_count: Optional[int],
        annotation: Any,
        parameter: Optional[inspect.Parameter] = None,
    ) -> None:
        self.declaration = declaration
        self.param_count = param_count
        self.annotation = annotation
        self.parameter = parameter


def make_executor(
    callback: Callable[[Any], Any],
    category: EventCategory,
    event_type: Optional[type[Event]],
    name: str,
) -> EventExecutor:
    """
    Wrap ``callback`` so it only ever receives events it was declared for.

    Raises EventTypeMismatchError when the fired event is not an instance of
    ``event_type`` or its category does not descend from ``category``.
    """
    expected = event_type.__qualname__ if event_type is not None else category.name

    def execute(event: Event) -> Any:
        if (event_type is not None and not isinstance(event, event_type)) or not (
            isinstance(event, Event) and event.category.is_a(category)
        ):
            raise EventTypeMismatchError(name, expected, type(event).__qualname__)
        return callback(event)

    execute.__qualname__ = name
    execute.__module__ = getattr(callback, "__module__", None) or __name__
    return execute


class Registrar:
    """
    Validates listener declarations and installs Bindings into a store.

    Examples
    --------
    >>> registrar = Registrar(RegistryStore())
    >>> registrar.install(JoinListener(), owner=plugin)
    [Binding(...)]
    >>> registrar.register_single(PLAYER, PriorityTier.MONITOR, audit, owner=plugin)
    Binding(...)
    """

    def __init__(
        self,
        store: RegistryStore,
        *,
        default_tier: PriorityTier = PriorityTier.DEFAULT,
        metrics: Optional[EventMetricsRecorder] = None,
    ) -> None:
        self._store = store
        self.default_tier = default_tier
        self.metrics = metrics

    # ------------------------------------------------------------------ #
    # Discovery
    # ------------------------------------------------------------------ #

    def _collect(self, listener: Any) -> list[_Resolved]:
        """Gather declarations and evaluate every type reference they make."""
        collect = getattr(listener, "event_handlers", None)
        if not callable(collect):
            raise TypeError(
                f"{_qualified_name(listener)} does not provide event_handlers()"
            )

        resolved: list[_Resolved] = []
        for declaration in collect():
            if not isinstance(declaration, HandlerDeclaration) or not callable(
                declaration.callback
            ):
                resolved.append(_Resolved(declaration, None, _NO_ANNOTATION))
                continue
            count, parameter = _single_parameter(declaration.callback)
            annotation = (
                _parameter_annotation(declaration.callback, parameter)
                if parameter is not None
                else _NO_ANNOTATION
            )
            resolved.append(_Resolved(declaration, count, annotation, parameter))
        return resolved

    def _validate(
        self, entry: _Resolved, listener_name: str
    ) -> tuple[EventCategory, Optional[type[Event]], PriorityTier, str]:
        declaration = entry.declaration
        if not isinstance(declaration, HandlerDeclaration):
            raise HandlerDeclarationError(
                repr(declaration), "not a HandlerDeclaration", listener_name
            )

        name = _callback_name(declaration)
        if not callable(declaration.callback):
            raise HandlerDeclarationError(name, "handler is not callable", listener_name)

        if entry.param_count is not None and entry.param_count != 1:
            raise HandlerDeclarationError(
                name,
                f"wrong method arguments: expected exactly 1 parameter, got {entry.param_count}",
                listener_name,
            )
        if (
            entry.parameter is not None
            and entry.parameter.kind not in _POSITIONAL_KINDS
        ):
            raise HandlerDeclarationError(
                name,
                f"wrong method arguments: parameter {entry.parameter.name!r} "
                "must accept the event positionally",
                listener_name,
            )

        event_type: Optional[type[Event]] = None
        if entry.annotation is not _NO_ANNOTATION:
            if not _is_event_type(entry.annotation):
                raise HandlerDeclarationError(
                    name,
                    f"parameter type {entry.annotation!r} is not an Event subclass",
                    listener_name,
                )
            event_type = entry.annotation

        if declaration.category is None:
            if event_type is None:
                raise HandlerDeclarationError(
                    name, "no event category declared or annotated", listener_name
                )
            category = event_type.category
        else:
            explicit = _as_category(declaration.category)
            if explicit is None:
                raise HandlerDeclarationError(
                    name,
                    f"{declaration.category!r} is not an EventCategory",
                    listener_name,
                )
            if event_type is None and _is_event_type(declaration.category):
                event_type = declaration.category
            if event_type is not None and not event_type.category.is_a(explicit):
                raise HandlerDeclarationError(
                    name,
                    f"parameter type {event_type.__qualname__} does not belong to "
                    f"category {explicit.name}",
                    listener_name,
                )
            category = explicit

        tier = self.default_tier if declaration.tier is None else declaration.tier
        if not isinstance(tier, PriorityTier):
            raise HandlerDeclarationError(
                name, f"{tier!r} is not a PriorityTier", listener_name
            )

        return category, event_type, tier, name

    def discover(self, listener: Any, owner: Any) -> dict[EventCategory, list[Binding]]:
        """
        Build Bindings for every valid handler ``listener`` declares.

        Returns an empty mapping, after logging once, when the listener refers
        to an event type that cannot be resolved.
        """
        listener_name = _qualified_name(listener)
        owner_name = _qualified_name(owner) if owner is not None else "None"

        try:
            entries = self._collect(listener)
        except (NameError, ImportError) as exc:
            reference = getattr(exc, "name", None) or str(exc)
            log_registration_error(
                logger,
                UnresolvedReferenceError(listener_name, owner_name, reference),
            )
            if self.metrics is not None:
                self.metrics.record_rejected_listener()
            return {}

        discovered: dict[EventCategory, list[Binding]] = {}
        for entry in entries:
            try:
                category, event_type, tier, name = self._validate(entry, listener_name)
            except HandlerDeclarationError as error:
                log_registration_error(logger, error, owner=owner_name)
                if self.metrics is not None:
                    self.metrics.record_rejected_declaration()
                continue

            executor = make_executor(entry.declaration.callback, category, event_type, name)
            binding = Binding.from_executor(executor, tier, owner, identifier=name)
            discovered.setdefault(category, []).append(binding)

        return discovered

    # ------------------------------------------------------------------ #
    # Installation
    # ------------------------------------------------------------------ #

    def install(self, listener: Any, owner: Any) -> list[Binding]:
        """
        Register every valid handler of ``listener`` on behalf of ``owner``.

        Raises
        ------
        CategoryResolutionError:
            If a declared category has no declaring ancestor. Nothing from
            this listener is installed in that case.
        """
        discovered = self.discover(listener, owner)
        resolved = [
            (category, resolve_declaring(category), bindings)
            for category, bindings in discovered.items()
        ]

        installed: list[Binding] = []
        for category, declaring, bindings in resolved:
            if declaring is not category:
                log_registration_error(
                    logger,
                    DelegatedCategoryError(
                        category.name, declaring.name, _qualified_name(owner)
                    ),
                    rejected_bindings=len(bindings),
                )
                if self.metrics is not None:
                    self.metrics.record_rejected_declaration(len(bindings))
                continue

            self._store.registry_for(declaring).register_all(bindings)
            installed.extend(bindings)
            if self.metrics is not None:
                self.metrics.adjust_binding_count(len(bindings))

            logger.debug(
                "Registered listener handlers",
                extra={
                    "event_category": declaring.name,
                    "listener": _qualified_name(listener),
                    "owner": _qualified_name(owner),
                    "binding_count": len(bindings),
                },
            )

        return installed

    def register_single(
        self,
        category: Any,
        tier: PriorityTier,
        executor: EventExecutor,
        owner: Any,
    ) -> Binding:
        """
        Install one executor directly, bypassing declaration discovery.

        ``category`` may be a delegating sub-category; the binding goes into
        its declaring ancestor's registry.
        """
        resolved_category = _as_category(category)
        if resolved_category is None:
            raise TypeError(f"{category!r} is not an EventCategory")
        if not isinstance(tier, PriorityTier):
            raise TypeError(f"{tier!r} is not a PriorityTier")
        if not callable(executor):
            raise TypeError(f"{executor!r} is not callable")

        registry = self._store.registry_for(resolved_category)
        binding = Binding.from_executor(executor, tier, owner)
        registry.register(binding)
        if self.metrics is not None:
            self.metrics.adjust_binding_count(1)

        logger.debug(
            "Registered single executor",
            extra={
                "event_category": registry.category.name,
                "binding_id": binding.identifier,
                "tier": tier.name,
                "owner": binding.owner_name,
            },
        )
        return binding
