"""
Log sink abstractions and concrete implementations.
"""

from __future__ import annotations

import os
import socket
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Callable, Optional

import orjson

from .config import DEFAULT_PATTERN, LoggerConfig
from .exceptions import SinkConstructionError
from .formatters import PatternFormatter, format_timestamp
from .levels import Level
from .records import LogRecord

# =============================================================================
# Sink Abstraction
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for log sinks.

    Every sink owns its formatter and level filter. Sinks are driven by the
    dispatch worker only, so implementations need no locking of their own.
    """

    def __init__(self, *, level: Level = Level.TRACE, pattern: str = DEFAULT_PATTERN, eol: str = "\n") -> None:
        self._level = Level.parse(level)
        self._eol = eol
        self._formatter = PatternFormatter(pattern, eol=eol)

    @property
    def level(self) -> Level:
        return self._level

    def set_level(self, level: Level | str) -> None:
        self._level = Level.parse(level)

    def should_log(self, level: Level) -> bool:
        return level >= self._level

    def set_pattern(self, pattern: str) -> None:
        self._formatter = PatternFormatter(pattern, eol=self._eol)

    @abstractmethod
    def emit(self, record: LogRecord) -> None:
        """Format the record and write it to the destination."""
        ...

    def flush(self) -> None:
        """Push buffered output to the destination."""

    def close(self) -> None:
        """Release resources held by the sink."""
        self.flush()


class ConsoleSink(BaseSink):
    """Standard output sink, colored by level when writing to a terminal.

    Args:
        stream: Output stream (default: stdout)
        color: Force colors on or off; ``None`` detects a terminal.
    """

    def __init__(
        self,
        *,
        level: Level = Level.TRACE,
        pattern: str = DEFAULT_PATTERN,
        stream: Optional[IO[str]] = None,
        color: Optional[bool] = None,
    ) -> None:
        super().__init__(level=level, pattern=pattern)
        self._stream = stream if stream is not None else sys.stdout
        if self._stream is None:
            raise SinkConstructionError(sink="console", reason="standard output is not available")
        if color is None:
            color = bool(getattr(self._stream, "isatty", lambda: False)())
        self._use_color = color

    def emit(self, record: LogRecord) -> None:
        self._stream.write(self._formatter.format(record, use_color=self._use_color))

    def flush(self) -> None:
        self._stream.flush()


class RotatingFileSink(BaseSink):
    """Size-rotated file sink.

    ``app.log`` rotates into ``app.1.log``, ``app.2.log`` ... and at most
    ``max_files`` files (active one included) are kept on disk.

    Writability is checked at construction by opening the file for append,
    so an unusable path fails here rather than on the worker. Nothing is
    written into the file until the first record.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        max_bytes: int = 1024 * 1024,
        max_files: int = 3,
        level: Level = Level.TRACE,
        pattern: str = DEFAULT_PATTERN,
    ) -> None:
        super().__init__(level=level, pattern=pattern)
        if max_bytes <= 0:
            raise SinkConstructionError(sink="file", reason="rotation size must be positive", details={"max_bytes": max_bytes})
        if max_files <= 0:
            raise SinkConstructionError(sink="file", reason="number of files must be positive", details={"max_files": max_files})

        self._path = Path(path)
        self._max_bytes = max_bytes
        self._max_files = max_files
        self.rotations = 0

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "ab")
            self._size = os.fstat(self._file.fileno()).st_size
        except OSError as exc:
            raise SinkConstructionError(
                sink="file",
                reason=f"cannot open '{self._path}' for writing: {exc}",
                details={"path": str(self._path)},
            ) from exc

    @property
    def path(self) -> Path:
        return self._path

    def archive_path(self, index: int) -> Path:
        """Path of archive ``index``; index 0 is the active file."""
        if index == 0:
            return self._path
        return self._path.with_name(f"{self._path.stem}.{index}{self._path.suffix}")

    def emit(self, record: LogRecord) -> None:
        data = self._formatter.format(record).encode("utf-8")
        self._file.write(data)
        self._size += len(data)
        if self._size >= self._max_bytes:
            self._rotate()

    def _rotate(self) -> None:
        self._file.close()
        try:
            if self._max_files == 1:
                self._path.unlink(missing_ok=True)
            # Shifting onto the last slot overwrites, and so deletes, the oldest archive.
            for index in range(self._max_files - 1, 0, -1):
                source = self.archive_path(index - 1)
                if source.exists():
                    source.replace(self.archive_path(index))
        finally:
            self._file = open(self._path, "ab")
            self._size = os.fstat(self._file.fileno()).st_size
        self.rotations += 1

    def flush(self) -> None:
        if not self._file.closed:
            self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.flush()
            self._file.close()


class UdpSink(BaseSink):
    """Fire-and-forget UDP sink sending one datagram per record.

    Args:
        host: Destination host or IP address
        port: Destination port
        wire_format: "json" (time/level/logger/message object) or "plain"
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        level: Level = Level.TRACE,
        pattern: str = DEFAULT_PATTERN,
        wire_format: str = "json",
    ) -> None:
        super().__init__(level=level, pattern=pattern, eol="")
        if not host or not port:
            raise SinkConstructionError(
                sink="network",
                reason="Invalid UDP sink configuration: host or port is empty",
                details={"host": host, "port": port},
            )
        if not 0 < port <= 65535:
            raise SinkConstructionError(sink="network", reason=f"port {port} out of range", details={"port": port})
        if wire_format not in ("json", "plain"):
            raise SinkConstructionError(
                sink="network", reason=f"unknown wire format '{wire_format}'", details={"wire_format": wire_format}
            )
        self._address = (host, port)
        self._family = socket.AF_INET6 if ":" in host else socket.AF_INET
        self._wire_format = wire_format
        self._socket: Optional[socket.socket] = None

    @property
    def address(self) -> tuple[str, int]:
        return self._address

    def encode(self, record: LogRecord) -> bytes:
        """Build the datagram payload for a record."""
        text = self._formatter.format(record)
        if self._wire_format == "plain":
            return text.encode("utf-8")
        return orjson.dumps(
            {
                "time": format_timestamp(record.created),
                "level": record.level.label,
                "logger": record.logger,
                "message": text,
            }
        )

    def emit(self, record: LogRecord) -> None:
        payload = self.encode(record)
        if self._socket is None:
            self._socket = socket.socket(self._family, socket.SOCK_DGRAM)
        self._socket.sendto(payload, self._address)

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None


class NullSink(BaseSink):
    """Sink that filters everything; its level stays ``OFF``."""

    def __init__(self) -> None:
        super().__init__(level=Level.OFF, pattern="%v")

    def set_level(self, level: Level | str) -> None:
        pass

    def should_log(self, level: Level) -> bool:
        return False

    def emit(self, record: LogRecord) -> None:
        pass


# =============================================================================
# Construction Boundary
# =============================================================================


@dataclass(frozen=True)
class SinkResult:
    """Outcome of building a sink: either the sink or the reason it failed."""

    sink: Optional[BaseSink] = None
    error: Optional[SinkConstructionError] = None

    @property
    def ok(self) -> bool:
        return self.sink is not None

    @classmethod
    def build(cls, factory: Callable[..., BaseSink], *args: Any, **kwargs: Any) -> SinkResult:
        try:
            return cls(sink=factory(*args, **kwargs))
        except SinkConstructionError as exc:
            return cls(error=exc)


def build_console_sink(config: LoggerConfig) -> SinkResult:
    return SinkResult.build(ConsoleSink, level=config.level, pattern=config.pattern, color=config.console_color)


def build_file_sink(config: LoggerConfig) -> SinkResult:
    return SinkResult.build(
        RotatingFileSink,
        config.file_path,
        max_bytes=config.file_size_bytes,
        max_files=config.number_of_log_files,
        level=config.level,
        pattern=config.pattern,
    )


def build_udp_sink(config: LoggerConfig) -> SinkResult:
    return SinkResult.build(
        UdpSink,
        config.network_ip,
        config.network_port,
        level=config.level,
        pattern=config.pattern,
        wire_format=config.udp_format,
    )


__all__ = [
    "BaseSink",
    "ConsoleSink",
    "RotatingFileSink",
    "UdpSink",
    "NullSink",
    "SinkResult",
    "build_console_sink",
    "build_file_sink",
    "build_udp_sink",
]
