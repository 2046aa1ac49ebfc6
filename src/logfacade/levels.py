"""
Severity levels shared by records, sinks and the facade.
"""

from __future__ import annotations

import logging
from enum import IntEnum


class Level(IntEnum):
    """Totally ordered severity; ``OFF`` filters everything."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5
    OFF = 6

    @property
    def label(self) -> str:
        """Wire name used by formatters and the UDP payload."""
        return self.name.lower()

    @property
    def short(self) -> str:
        return self.name[0]

    @classmethod
    def parse(cls, value: Level | str | int) -> Level:
        """Resolve a level from an instance, a name (case-insensitive) or an ordinal.

        Raises:
            ValueError: If the value names no known level.
        """
        if isinstance(value, Level):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().lower()
            name = _ALIASES.get(name, name)
            try:
                return cls[name.upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown log level: {value!r}")

    @classmethod
    def from_stdlib(cls, levelno: int) -> Level:
        """Map a standard library numeric level onto the closest facade level."""
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        if levelno >= logging.DEBUG:
            return cls.DEBUG
        return cls.TRACE


_ALIASES = {
    "warn": "warning",
    "err": "error",
    "fatal": "critical",
}

__all__ = ["Level"]
