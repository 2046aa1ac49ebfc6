"""
Asynchronous multi-sink logging facade.

Records emitted through a facade handle are queued and fanned out by a
background worker to the configured sinks:
- console: Standard output (level-colored on terminals)
- file: Size-rotated local file
- network: UDP datagrams (json or plain)

Library: structlog for the handle, orjson for the UDP wire format,
pydantic-settings for environment configuration.
"""

from .config import LoggerConfig
from .core import FacadeBoundLogger, FacadeState, LoggerFacade, get_facade
from .exceptions import (
    ConfigValueError,
    InitializationFailure,
    LogFacadeError,
    SinkConstructionError,
    UsageError,
)
from .interceptors import FacadeHandler, intercept_stdlib
from .levels import Level
from .records import LogRecord
from .sinks import BaseSink, ConsoleSink, NullSink, RotatingFileSink, SinkResult, UdpSink

__all__ = [
    "BaseSink",
    "ConfigValueError",
    "ConsoleSink",
    "FacadeBoundLogger",
    "FacadeHandler",
    "FacadeState",
    "InitializationFailure",
    "Level",
    "LogFacadeError",
    "LogRecord",
    "LoggerConfig",
    "LoggerFacade",
    "NullSink",
    "RotatingFileSink",
    "SinkConstructionError",
    "SinkResult",
    "UdpSink",
    "UsageError",
    "get_facade",
    "intercept_stdlib",
]
