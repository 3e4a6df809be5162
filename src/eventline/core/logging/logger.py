"""
eventline Logging Subsystem

Purpose
-------
Provide the structured, thread-safe logging stack used by every eventline
module, offering:

- Structured JSON logs for aggregation and analysis.
- LogContext-based propagation of dispatch context via ContextVars.
- Correlation IDs so every record emitted during one ``fire`` can be joined.
- Non-blocking emission via a QueueHandler + QueueListener architecture.
- Bounded, health-aware log queue with graceful degradation on overload.
- Console handler (JSON in production, colored human text in dev) and an
  optional daily rotating JSON file.

Responsibilities
----------------
- Initialize and configure the global logging stack (``setup_logging``).
- Enrich all log records with contextual fields:
  - correlation_id, component, operation
  - event_name, event_category
- Provide simple helper APIs:
  - get_logger()
  - LogContext (context manager)
  - set_log_context() / clear_log_context()
  - get_logging_health()

Design Decisions
----------------
- Library code never configures logging on import; hosts call
  ``setup_logging()`` (``initialize_event_system`` does it for them).
- JSONFormatter is the canonical representation.
- Extra fields passed via ``logger.info("msg", extra={...})`` are merged
  into JSON output.

Dependencies
------------
- eventline.core.config.config.Config (read lazily)
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import (
    QueueHandler,
    QueueListener,
    TimedRotatingFileHandler,
)
from pathlib import Path
from typing import Any, Dict, Optional


# ============================================================================
# Dispatch / Operation Context (ContextVars)
# ============================================================================

_log_context: ContextVar[Dict[str, Any]] = ContextVar(
    "eventline_log_context",
    default={},
)


# ============================================================================
# Config / Environment
# ============================================================================


def _static_config():
    from eventline.core.config.config import Config

    return Config


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Configuration for the logging subsystem."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    DAILY_BASENAME: str = "eventline_daily.json.log"
    DAILY_BACKUP_COUNT: int = 1

    @property
    def environment(self) -> str:
        return str(_static_config().ENVIRONMENT).lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def logs_dir(self) -> Path:
        return Path(_static_config().LOGS_DIR).resolve()

    @property
    def log_to_file(self) -> bool:
        return bool(_static_config().LOG_TO_FILE)

    @property
    def queue_max_size(self) -> int:
        return int(_static_config().LOG_QUEUE_SIZE)

    @property
    def log_level(self) -> int:
        level_name = _static_config().LOG_LEVEL
        if not isinstance(level_name, str):
            level_name = "INFO"
        return getattr(logging, level_name.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        json_flag = _static_config().LOG_JSON
        if json_flag is None:
            return self.is_production
        return bool(json_flag)

    @property
    def use_colors(self) -> bool:
        if self.is_production or self.use_json:
            return False
        return bool(_static_config().LOG_COLORS) and sys.stdout.isatty()


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Logging Metrics / Health
# ============================================================================


@dataclass(slots=True)
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_logging_metrics: LoggingMetrics = LoggingMetrics()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the current LogContext onto each record passing through a handler."""

    FIELDS = ("correlation_id", "component", "operation", "event_name", "event_category")

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context: Dict[str, Any] = _log_context.get({})

        # Fields already on the record (explicit extra=, or captured on the
        # emitting thread before queueing) are left alone.
        for field_name in self.FIELDS:
            if getattr(record, field_name, None) is not None:
                continue
            value = context.get(field_name)
            if field_name == "component" and not value:
                value = record.name.split(".", 1)[0]
            setattr(record, field_name, value if value is not None else "N/A")

        return True


class ColoredFormatter(logging.Formatter):
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        original = record.levelname
        prefix = self.COLORS.get(original, "")
        reset = self.COLORS["RESET"] if prefix else ""

        if prefix:
            record.levelname = f"{prefix}{original}{reset}"

        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    STANDARD_ATTRS = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }

    CONTEXT_ATTRS = {
        "correlation_id",
        "component",
        "operation",
        "event_name",
        "event_category",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        created_dt = datetime.fromtimestamp(record.created, tz=timezone.utc)

        log_data: Dict[str, Any] = {
            "timestamp": created_dt.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                log_data[attr] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra: Dict[str, Any] = {}
        for key, val in record.__dict__.items():
            if key in self.STANDARD_ATTRS or key in self.CONTEXT_ATTRS:
                continue
            if key.startswith("_"):
                continue
            if key in {"levelname", "name", "message", "asctime"}:
                continue
            extra[key] = val

        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# Custom Queue Handler & Listener
# ============================================================================


class EventlineQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _logging_metrics.records_enqueued += 1

        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _logging_metrics.records_dropped += 1
            sys.stderr.write("eventline logging queue full; dropping log record.\n")


class EventlineQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _logging_metrics.listener_errors += 1
        sys.stderr.write("eventline logging handler error while processing record.\n")


# ============================================================================
# Global Setup
# ============================================================================

_queue_listener: Optional[QueueListener] = None


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.log_level)

    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    elif LOGGER_CONFIG.use_colors:
        handler.setFormatter(
            ColoredFormatter(
                fmt=LOGGER_CONFIG.CONSOLE_FORMAT,
                datefmt=LOGGER_CONFIG.DATE_FORMAT,
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt=LOGGER_CONFIG.CONSOLE_FORMAT,
                datefmt=LOGGER_CONFIG.DATE_FORMAT,
            )
        )

    handler.addFilter(ContextFilter())
    return handler


def _build_daily_file_handler() -> logging.Handler:
    LOGGER_CONFIG.logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = LOGGER_CONFIG.logs_dir / LOGGER_CONFIG.DAILY_BASENAME

    handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=LOGGER_CONFIG.DAILY_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGER_CONFIG.log_level)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(ContextFilter())
    return handler


class _ContextCapturingQueueHandler(EventlineQueueHandler):
    """Resolve ContextVar fields on the emitting thread before enqueueing."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:  # type: ignore[override]
        ContextFilter().filter(record)
        return super().prepare(record)


def setup_logging() -> None:
    """
    Install the queue-based handler stack on the ``eventline`` logger.

    Idempotent: a second call is a no-op until ``shutdown_logging()``.
    """
    global _queue_listener, _logging_metrics, _log_queue

    root = logging.getLogger("eventline")

    if getattr(root, "_eventline_logging_initialized", False):
        return

    _logging_metrics = LoggingMetrics()

    root.setLevel(LOGGER_CONFIG.log_level)

    handlers = [_build_console_handler()]
    if LOGGER_CONFIG.log_to_file:
        handlers.append(_build_daily_file_handler())

    _log_queue = queue.Queue(LOGGER_CONFIG.queue_max_size)

    _queue_listener = EventlineQueueListener(
        _log_queue,
        *handlers,
        respect_handler_level=True,
    )
    _queue_listener.start()

    queue_handler = _ContextCapturingQueueHandler(_log_queue)
    queue_handler.setLevel(LOGGER_CONFIG.log_level)

    root.addHandler(queue_handler)
    setattr(root, "_eventline_logging_initialized", True)

    log = logging.getLogger(__name__)
    log.info(
        "Logging initialized",
        extra={
            "environment": LOGGER_CONFIG.environment,
            "log_level": logging.getLevelName(LOGGER_CONFIG.log_level),
            "json": LOGGER_CONFIG.use_json,
            "colors": LOGGER_CONFIG.use_colors,
            "log_to_file": LOGGER_CONFIG.log_to_file,
            "queue_max_size": LOGGER_CONFIG.queue_max_size,
        },
    )


def shutdown_logging() -> None:
    global _queue_listener, _log_queue

    root = logging.getLogger("eventline")
    log = logging.getLogger(__name__)

    if not getattr(root, "_eventline_logging_initialized", False):
        return

    log.info("Shutting down logging subsystem.")

    for handler in list(root.handlers):
        if isinstance(handler, EventlineQueueHandler):
            root.removeHandler(handler)
            handler.close()

    if _queue_listener:
        try:
            _queue_listener.stop()
        finally:
            for handler in _queue_listener.handlers:
                handler.flush()
                handler.close()
            _queue_listener = None

    setattr(root, "_eventline_logging_initialized", False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    initialized = bool(
        getattr(logging.getLogger("eventline"), "_eventline_logging_initialized", False)
    )

    queue_size = 0
    max_size = 0
    if _log_queue is not None:
        queue_size = _log_queue.qsize()
        max_size = _log_queue.maxsize

    return LoggingHealth(
        initialized=initialized,
        queue_size=queue_size,
        queue_max_size=max_size,
        records_enqueued=_logging_metrics.records_enqueued,
        records_dropped=_logging_metrics.records_dropped,
        listener_errors=_logging_metrics.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scope contextual log fields to a block.

    >>> with LogContext(component="dispatcher", event_name="PlayerJoinEvent"):
    ...     logger.info("delivering")
    """

    def __init__(
        self,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        inherited = _log_context.get({})
        effective = (
            correlation_id
            or inherited.get("correlation_id")
            or self._generate_correlation_id()
        )

        self.context: Dict[str, Any] = {
            **inherited,
            "component": component or inherited.get("component"),
            "operation": operation or inherited.get("operation", "N/A"),
            "correlation_id": effective,
            **extra,
        }

        self._token: Optional[Token[Dict[str, Any]]] = None

    @staticmethod
    def _generate_correlation_id() -> str:
        return str(uuid.uuid4())[:8]

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))


def set_log_context(
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra: Any,
) -> None:

    current = _log_context.get({}).copy()

    if component is not None:
        current["component"] = component
    if operation is not None:
        current["operation"] = operation
    if correlation_id:
        current["correlation_id"] = correlation_id

    current.update(extra)
    _log_context.set(current)


def clear_log_context() -> None:
    _log_context.set({})
