import os
import threading
import typing as t

import pytest

from logfacade import LoggerFacade
from logfacade.levels import Level
from logfacade.records import LogRecord
from logfacade.sinks import BaseSink


class RecordingSink(BaseSink):
    """Sink that keeps every emitted record in memory."""

    def __init__(self, level: Level = Level.TRACE, pattern: str = "%v") -> None:
        super().__init__(level=level, pattern=pattern)
        self.records: list[LogRecord] = []
        self.rendered: list[str] = []
        self.flushes = 0
        self.closed = False

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)
        self.rendered.append(self._formatter.format(record))

    def flush(self) -> None:
        self.flushes += 1

    def close(self) -> None:
        self.closed = True

    @property
    def messages(self) -> list[str]:
        return [record.message for record in self.records]


class GatedSink(RecordingSink):
    """Recording sink whose emit waits until the gate is opened."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = threading.Event()
        self.entered = threading.Event()

    def emit(self, record: LogRecord) -> None:
        self.entered.set()
        self.gate.wait(timeout=10)
        super().emit(record)


@pytest.fixture(autouse=True)
def clean_log_env(monkeypatch):
    """
    Keeps LOG_* variables of the host environment out of LoggerConfig.
    """
    for key in list(os.environ):
        if key.startswith("LOG_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def facade() -> t.Iterator[LoggerFacade]:
    instance = LoggerFacade()
    yield instance
    instance.shutdown()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


def make_record(message: str = "hello", level: Level = Level.INFO, logger: str = "test", **extra: t.Any) -> LogRecord:
    return LogRecord(level=level, message=message, logger=logger, extra=extra)
