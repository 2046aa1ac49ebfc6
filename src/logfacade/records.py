"""
The immutable record handed from producers to the sinks.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .levels import Level


@dataclass(frozen=True)
class LogRecord:
    """
    A single log event travelling from a producer to the sinks.

    Records are built on the producer thread and never mutated afterwards;
    the worker only reads them.
    """

    level: Level
    message: str
    logger: str = "root"
    created: float = field(default_factory=time.time)
    # Epoch seconds; rendered in local time.

    thread_id: int = field(default_factory=threading.get_ident)
    extra: Mapping[str, Any] = field(default_factory=dict)
    # Keyword context passed to the log call, rendered as key=value.

    exception: Optional[str] = None
    # Pre-rendered traceback or stack text.

    def __post_init__(self) -> None:
        if not isinstance(self.extra, MappingProxyType):
            object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def local_time(self) -> datetime:
        return datetime.fromtimestamp(self.created)


__all__ = ["LogRecord"]
