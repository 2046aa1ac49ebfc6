"""
Pattern formatter and color utilities.

Patterns use spdlog-style ``%`` flags, e.g. ``%Y-%m-%d %H:%M:%S.%e [%n] [%l] %v``.
A pattern is compiled once into a token list and rendered per record on the
worker thread.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Callable, Union

from .levels import Level
from .records import LogRecord

# =============================================================================
# Colors
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "key": "\033[34m",
}

LEVEL_COLORS = {
    Level.TRACE: "\033[37m",
    Level.DEBUG: "\033[36m",
    Level.INFO: "\033[32m",
    Level.WARNING: "\033[33;1m",
    Level.ERROR: "\033[31;1m",
    Level.CRITICAL: "\033[1;41m",
    Level.OFF: "",
}


def colorize(text: str, level: Level) -> str:
    """Wrap text in the ANSI color of ``level``."""
    color = LEVEL_COLORS.get(level, "")
    if not color:
        return text
    return f"{color}{text}{COLORS['reset']}"


def format_timestamp(created: float) -> str:
    """Local time with millisecond precision: ``YYYY-MM-DD HH:MM:SS.mmm``."""
    dt = datetime.fromtimestamp(created)
    return f"{dt.strftime('%Y-%m-%d %H:%M:%S')}.{dt.microsecond // 1000:03d}"


def render_message(record: LogRecord) -> str:
    """Message text followed by ``key=value`` extras and any exception text."""
    text = record.message
    if record.extra:
        text = f"{text} " + " ".join(f"{key}={value}" for key, value in record.extra.items())
    if record.exception:
        text = f"{text}\n{record.exception}"
    return text


# =============================================================================
# Pattern Compilation
# =============================================================================

Renderer = Callable[[LogRecord, datetime], str]


class _ColorMark:
    def __init__(self, start: bool) -> None:
        self.start = start


_COLOR_START = _ColorMark(True)
_COLOR_END = _ColorMark(False)

Token = Union[str, Renderer, _ColorMark]


def _utc_offset(dt: datetime) -> str:
    offset = dt.astimezone().utcoffset()
    minutes = int(offset.total_seconds() // 60) if offset else 0
    sign = "-" if minutes < 0 else "+"
    minutes = abs(minutes)
    return f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


_FLAGS: dict[str, Renderer] = {
    "Y": lambda r, dt: f"{dt.year:04d}",
    "y": lambda r, dt: f"{dt.year % 100:02d}",
    "m": lambda r, dt: f"{dt.month:02d}",
    "d": lambda r, dt: f"{dt.day:02d}",
    "H": lambda r, dt: f"{dt.hour:02d}",
    "I": lambda r, dt: f"{(dt.hour % 12) or 12:02d}",
    "M": lambda r, dt: f"{dt.minute:02d}",
    "S": lambda r, dt: f"{dt.second:02d}",
    "p": lambda r, dt: "AM" if dt.hour < 12 else "PM",
    "e": lambda r, dt: f"{dt.microsecond // 1000:03d}",
    "f": lambda r, dt: f"{dt.microsecond:06d}",
    "F": lambda r, dt: f"{dt.microsecond * 1000:09d}",
    "E": lambda r, dt: str(int(r.created)),
    "T": lambda r, dt: dt.strftime("%H:%M:%S"),
    "D": lambda r, dt: dt.strftime("%m/%d/%y"),
    "a": lambda r, dt: dt.strftime("%a"),
    "A": lambda r, dt: dt.strftime("%A"),
    "b": lambda r, dt: dt.strftime("%b"),
    "B": lambda r, dt: dt.strftime("%B"),
    "z": lambda r, dt: _utc_offset(dt),
    "n": lambda r, dt: r.logger,
    "l": lambda r, dt: r.level.label,
    "L": lambda r, dt: r.level.short,
    "v": lambda r, dt: render_message(r),
    "t": lambda r, dt: str(r.thread_id),
    "P": lambda r, dt: str(os.getpid()),
}


def compile_pattern(pattern: str) -> list[Token]:
    """Split a pattern into literal text, flag renderers and color marks."""
    tokens: list[Token] = []
    literal: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char != "%" or i + 1 >= len(pattern):
            literal.append(char)
            i += 1
            continue

        flag = pattern[i + 1]
        i += 2
        if flag == "%":
            literal.append("%")
            continue
        if flag in ("^", "$") or flag in _FLAGS:
            if literal:
                tokens.append("".join(literal))
                literal = []
            if flag == "^":
                tokens.append(_COLOR_START)
            elif flag == "$":
                tokens.append(_COLOR_END)
            else:
                tokens.append(_FLAGS[flag])
            continue
        # Unknown flags render literally.
        literal.append("%" + flag)

    if literal:
        tokens.append("".join(literal))
    return tokens


class PatternFormatter:
    """Renders records through a compiled pattern template."""

    def __init__(self, pattern: str, *, eol: str = "\n") -> None:
        self._pattern = pattern
        self._eol = eol
        self._tokens = compile_pattern(pattern)
        self._has_color_range = any(token is _COLOR_START for token in self._tokens)

    @property
    def pattern(self) -> str:
        return self._pattern

    def format(self, record: LogRecord, *, use_color: bool = False) -> str:
        dt = record.local_time
        parts: list[str] = []
        colored_from: int | None = None

        for token in self._tokens:
            if isinstance(token, str):
                parts.append(token)
            elif isinstance(token, _ColorMark):
                if not use_color:
                    continue
                if token.start:
                    colored_from = len(parts)
                elif colored_from is not None:
                    parts[colored_from:] = [colorize("".join(parts[colored_from:]), record.level)]
                    colored_from = None
            else:
                text = token(record, dt)
                if use_color and not self._has_color_range and token is _FLAGS["l"]:
                    text = colorize(text, record.level)
                parts.append(text)

        if colored_from is not None:
            parts[colored_from:] = [colorize("".join(parts[colored_from:]), record.level)]
        return "".join(parts) + self._eol


__all__ = [
    "COLORS",
    "LEVEL_COLORS",
    "PatternFormatter",
    "colorize",
    "compile_pattern",
    "format_timestamp",
    "render_message",
]
