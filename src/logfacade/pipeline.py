"""
Bounded event queue and the background dispatch worker.

Producers only ever call ``EventQueue.put``; it blocks while the queue is
full and never drops. A single worker thread takes records in FIFO order and
fans each one out to the sinks. Flush and stop requests travel through the
same queue, so both act as barriers behind every record enqueued before them.
Stopping also closes the queue: items accepted before the stop marker are
still processed, later puts are refused instead of waiting forever.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import structlog

from .config import DEFAULT_QUEUE_SIZE
from .levels import Level
from .records import LogRecord
from .sinks import BaseSink

logger = structlog.get_logger(logger_name="logfacade.worker")


@dataclass
class _FlushRequest:
    done: threading.Event = field(default_factory=threading.Event)


class _Stop:
    pass


_STOP = _Stop()

QueueItem = Union[LogRecord, _FlushRequest, _Stop]


class _ClosableQueue(queue.Queue):
    """``queue.Queue`` whose blocking put gives up once the queue is closed."""

    def __init__(self, maxsize: int) -> None:
        super().__init__(maxsize)
        self.closed = False

    def put_unless_closed(self, item: QueueItem) -> bool:
        with self.not_full:
            while not self.closed and self._qsize() >= self.maxsize:
                self.not_full.wait()
            if self.closed:
                return False
            self._put(item)
            self.unfinished_tasks += 1
            self.not_empty.notify()
            return True

    def close_with(self, item: QueueItem) -> None:
        """Append a final item past capacity and refuse every later put."""
        with self.mutex:
            if self.closed:
                return
            self.closed = True
            self._put(item)
            self.unfinished_tasks += 1
            self.not_empty.notify()
            # Wake producers waiting for space so they see the closed flag.
            self.not_full.notify_all()


class EventQueue:
    """Fixed-capacity FIFO shared by producers and the worker."""

    def __init__(self, capacity: int = DEFAULT_QUEUE_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._queue = _ClosableQueue(capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._queue.closed

    def put(self, item: QueueItem) -> bool:
        """
        Enqueue an item, waiting for a free slot when the queue is full.

        Returns:
            False if the queue was closed before the item could be accepted.
        """
        return self._queue.put_unless_closed(item)

    def close(self, final_item: QueueItem) -> None:
        """Enqueue ``final_item`` as the last item ever accepted."""
        self._queue.close_with(final_item)

    def get(self) -> QueueItem:
        return self._queue.get(block=True)

    def task_done(self) -> None:
        self._queue.task_done()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()


@dataclass(frozen=True)
class WorkerStats:
    processed: int
    sink_failures: int
    pending: int
    alive: bool


class DispatchWorker:
    """
    Single consumer draining an ``EventQueue`` into a fixed set of sinks.

    A failing sink never prevents delivery to the others: its exception is
    reported and counted, and dispatch moves on to the next sink.
    """

    def __init__(
        self,
        events: EventQueue,
        sinks: Sequence[BaseSink],
        *,
        flush_level: Level = Level.TRACE,
        name: str = "logfacade-worker",
    ) -> None:
        self._events = events
        self._sinks = tuple(sinks)
        self._flush_level = flush_level
        self._name = name
        self._thread: Optional[threading.Thread] = None
        self._processed = 0
        self._sink_failures = 0

    @property
    def sinks(self) -> tuple[BaseSink, ...]:
        return self._sinks

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_alive:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def submit(self, record: LogRecord) -> bool:
        """
        Hand a record to the worker; blocks under backpressure.

        Returns:
            False if the worker is stopping and the record was not accepted.
        """
        return self._events.put(record)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every record enqueued so far is emitted and all sinks are flushed.

        Returns:
            False if ``timeout`` elapsed first.
        """
        thread = self._thread
        if thread is None or not thread.is_alive():
            self._flush_sinks()
            return True
        request = _FlushRequest()
        if not self._events.put(request):
            # Stopping: the stop marker drains and flushes everything accepted.
            thread.join(timeout)
            return not thread.is_alive()
        return request.done.wait(timeout)

    def stop(self) -> None:
        """Close the queue, drain it, flush the sinks and join the worker thread."""
        thread = self._thread
        if thread is None:
            return
        self._events.close(_STOP)
        if thread.is_alive():
            thread.join()
        self._thread = None

    def stats(self) -> WorkerStats:
        return WorkerStats(
            processed=self._processed,
            sink_failures=self._sink_failures,
            pending=self._events.qsize(),
            alive=self.is_alive,
        )

    # =========================================================================
    # Worker Thread
    # =========================================================================

    def _run(self) -> None:
        while True:
            item = self._events.get()
            try:
                if isinstance(item, _Stop):
                    self._flush_sinks()
                    return
                if isinstance(item, _FlushRequest):
                    self._flush_sinks()
                    item.done.set()
                    continue
                self._dispatch(item)
            finally:
                self._events.task_done()

    def _dispatch(self, record: LogRecord) -> None:
        for sink in self._sinks:
            if not sink.should_log(record.level):
                continue
            try:
                sink.emit(record)
                if record.level >= self._flush_level:
                    sink.flush()
            except Exception as exc:
                self._report(sink, exc, record)
        self._processed += 1

    def _flush_sinks(self) -> None:
        for sink in self._sinks:
            try:
                sink.flush()
            except Exception as exc:
                self._report(sink, exc)

    def _report(self, sink: BaseSink, exc: Exception, record: Optional[LogRecord] = None) -> None:
        self._sink_failures += 1
        logger.error(
            "Sink failed",
            sink=type(sink).__name__,
            error=repr(exc),
            record_logger=record.logger if record is not None else None,
        )


__all__ = ["EventQueue", "DispatchWorker", "WorkerStats"]
