"""
Facade lifecycle and the structlog handle feeding the event queue.
"""

from __future__ import annotations

import atexit
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

import structlog
from structlog import DropEvent
from structlog.typing import EventDict, WrappedLogger

from .config import DEFAULT_QUEUE_SIZE, LoggerConfig
from .exceptions import InitializationFailure, UsageError
from .levels import Level
from .pipeline import DispatchWorker, EventQueue, WorkerStats
from .records import LogRecord
from .sinks import BaseSink, NullSink, build_console_sink, build_file_sink, build_udp_sink

logger = structlog.get_logger(logger_name="logfacade.bootstrap")


class FacadeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


# =============================================================================
# Handle
# =============================================================================


class QueueLogger:
    """Wrapped logger whose every method hands the finished record to a submit callable."""

    def __init__(self, submit: Callable[[LogRecord], None]) -> None:
        self._submit = submit

    def _enqueue(self, record: LogRecord) -> None:
        self._submit(record)

    trace = debug = info = warning = error = critical = _enqueue


class FacadeBoundLogger(structlog.BoundLoggerBase):
    """Bound logger exposing every facade level, including ``trace``."""

    def trace(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        return self._log("trace", event, args, kw)

    def debug(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        return self._log("debug", event, args, kw)

    def info(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        return self._log("info", event, args, kw)

    def warning(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        return self._log("warning", event, args, kw)

    warn = warning

    def error(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        return self._log("error", event, args, kw)

    def exception(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        kw.setdefault("exc_info", True)
        return self._log("error", event, args, kw)

    def critical(self, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        return self._log("critical", event, args, kw)

    def log(self, level: Level | str | int, event: Optional[str] = None, *args: Any, **kw: Any) -> Any:
        resolved = Level.parse(level)
        if resolved is Level.OFF:
            return None
        return self._log(resolved.label, event, args, kw)

    def _log(self, method_name: str, event: Optional[str], args: tuple[Any, ...], kw: dict[str, Any]) -> Any:
        if args and event is not None:
            event = event % args
        return self._proxy_to_logger(method_name, event, **kw)


# =============================================================================
# Processors
# =============================================================================


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp the creation time on the producer thread."""
    event_dict["timestamp"] = time.time()
    return event_dict


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Move the bound ``_name`` into the ``logger`` key."""
    event_dict["logger"] = event_dict.pop("_name", "root")
    return event_dict


def _exception_text(event_dict: EventDict) -> Optional[str]:
    parts = [event_dict.pop(key, None) for key in ("stack", "exception")]
    return "\n".join(part for part in parts if part) or None


def build_record(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> tuple[tuple[LogRecord], dict]:
    """Freeze the event into a ``LogRecord`` passed positionally to the wrapped logger."""
    level = event_dict.pop("level")
    message = event_dict.pop("event", "")
    record = LogRecord(
        level=level,
        message="" if message is None else str(message),
        logger=event_dict.pop("logger"),
        created=event_dict.pop("timestamp"),
        exception=_exception_text(event_dict),
        extra=event_dict,
    )
    return (record,), {}


# =============================================================================
# Facade
# =============================================================================


class LoggerFacade:
    """
    Owner of the sink set and the queue/worker pair.

    States: ``UNINITIALIZED`` -> ``ACTIVE`` (initialize) -> ``UNINITIALIZED``
    (shutdown), restartable any number of times.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._state = FacadeState.UNINITIALIZED
        self._sinks: list[BaseSink] = []
        self._events: Optional[EventQueue] = None
        self._worker: Optional[DispatchWorker] = None
        self._level = Level.OFF
        self._logger_name = "root"
        self._exit_hook_registered = False

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> FacadeState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is FacadeState.ACTIVE

    @property
    def sinks(self) -> tuple[BaseSink, ...]:
        return tuple(self._sinks)

    @property
    def level(self) -> Level:
        return self._level

    @property
    def queue_capacity(self) -> Optional[int]:
        return self._events.capacity if self._events is not None else None

    def stats(self) -> Optional[WorkerStats]:
        worker = self._worker
        return worker.stats() if worker is not None else None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self, config: Optional[LoggerConfig] = None) -> None:
        """Build the sinks and start the worker. A second call only warns."""
        with self._lock:
            if self.is_active:
                logger.warning("Logger already initialized. Skipping re-initialization.")
                return

            sinks: list[BaseSink] = []
            try:
                if config is None:
                    config = LoggerConfig()
                sinks = self._build_sinks(config)
                level = Level.OFF if config.is_silent else config.level
                self._logger_name = config.logger_name
                self._start(sinks, level, config.queue_size, config.flush_on)
            except Exception as exc:
                if isinstance(exc, InitializationFailure):
                    logger.error("Failed to initialize logger", error=str(exc), code=exc.code)
                else:
                    logger.exception("Failed to initialize logger")
                self._discard(sinks)
                self._start([NullSink()], Level.OFF, DEFAULT_QUEUE_SIZE, Level.OFF)
            else:
                logger.info(
                    "Logger initialized",
                    modes=", ".join(config.modes),
                    file=config.file_path,
                    network=f"{config.network_ip}:{config.network_port}",
                    level=config.level.label,
                    udp_format=config.udp_format,
                )

            self._state = FacadeState.ACTIVE
            if not self._exit_hook_registered:
                atexit.register(self.shutdown)
                self._exit_hook_registered = True

    def shutdown(self) -> None:
        """Drain the queue, flush and close every sink. Safe to call repeatedly."""
        with self._lock:
            if not self.is_active:
                return
            worker = self._worker
            # New emits are dropped from here on; queued ones still drain.
            self._state = FacadeState.UNINITIALIZED
            self._worker = None
            if worker is not None:
                worker.flush()
                worker.stop()
            self._discard(self._sinks)
            self._sinks = []
            self._events = None
            self._level = Level.OFF

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until everything enqueued so far reached the sinks."""
        worker = self._require_worker("flush")
        return worker.flush(timeout)

    def set_log_level(self, level: Level | str) -> None:
        """Apply ``level`` to the facade filter and to every sink alike."""
        with self._lock:
            worker = self._require_worker("set_log_level")
            resolved = Level.parse(level)
            # Records enqueued so far are filtered against the old sink levels.
            worker.flush()
            self._level = resolved
            for sink in self._sinks:
                sink.set_level(resolved)
            logger.info("Log level changed", level=resolved.label)

    def get_logger(self, name: Optional[str] = None) -> FacadeBoundLogger:
        """Return a structlog handle whose records flow through this facade."""
        self._require_worker("get_logger")
        return structlog.wrap_logger(
            QueueLogger(self._submit),
            processors=[
                self._filter_by_level,
                add_timestamp,
                add_logger_name,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                build_record,
            ],
            wrapper_class=FacadeBoundLogger,
            context_class=dict,
            _name=name or self._logger_name,
        ).bind()

    # =========================================================================
    # Internals
    # =========================================================================

    def _build_sinks(self, config: LoggerConfig) -> list[BaseSink]:
        if config.is_silent:
            return [NullSink()]

        console = build_console_sink(config)
        if not console.ok:
            raise InitializationFailure("Console sink could not be created", details={"reason": str(console.error)})
        sinks: list[BaseSink] = [console.sink]

        for mode in config.modes:
            if mode == "file":
                if not config.file_path:
                    logger.warning("LOG_FILE_PATH not set for file mode. Skipping file sink.")
                    continue
                result = build_file_sink(config)
            elif mode == "network":
                result = build_udp_sink(config)
            else:
                continue

            if result.ok:
                sinks.append(result.sink)
            else:
                logger.error(str(result.error), code=result.error.code, **result.error.details)
        return sinks

    def _start(self, sinks: list[BaseSink], level: Level, queue_size: int, flush_level: Level) -> None:
        events = EventQueue(queue_size)
        worker = DispatchWorker(events, sinks, flush_level=flush_level)
        worker.start()
        self._sinks = list(sinks)
        self._events = events
        self._worker = worker
        self._level = level

    def _discard(self, sinks: list[BaseSink]) -> None:
        for sink in sinks:
            try:
                sink.close()
            except Exception as exc:
                logger.error("Failed to close sink", sink=type(sink).__name__, error=repr(exc))

    def _require_worker(self, operation: str) -> DispatchWorker:
        worker = self._worker
        if not self.is_active or worker is None:
            raise UsageError(operation)
        return worker

    def _filter_by_level(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        level = Level.parse(method_name)
        if not self.is_active or level < self._level:
            raise DropEvent
        event_dict["level"] = level
        return event_dict

    def _submit(self, record: LogRecord) -> None:
        worker = self._worker
        if worker is not None:
            worker.submit(record)


# =============================================================================
# Default Instance
# =============================================================================

_default_facade: Optional[LoggerFacade] = None
_default_lock = threading.Lock()


def get_facade() -> LoggerFacade:
    """
    Process-wide facade, created on first access.

    Its lifecycle is still explicit: callers initialize and shut it down.
    """
    global _default_facade
    if _default_facade is None:
        with _default_lock:
            if _default_facade is None:
                _default_facade = LoggerFacade()
    return _default_facade


__all__ = [
    "FacadeBoundLogger",
    "FacadeState",
    "LoggerFacade",
    "QueueLogger",
    "add_logger_name",
    "add_timestamp",
    "build_record",
    "get_facade",
]
