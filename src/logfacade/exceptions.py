"""
Exception hierarchy for the logging facade.

Only ``UsageError`` ever reaches application code; every other error is
logged through the bootstrap logger and the facade degrades instead of
failing.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LogFacadeError(Exception):
    """Root of every facade error, carrying a machine-readable code."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigValueError(LogFacadeError, ValueError):
    """A configuration value could not be used; the default replaces it."""

    def __init__(self, *, field: str, value: Any, default: Any, reason: str) -> None:
        super().__init__(
            f"Invalid value {value!r} for '{field}': {reason}. Using default {default!r}.",
            code="CONFIG_VALUE_INVALID",
            details={"field": field, "value": value, "default": default},
        )
        self.field = field
        self.value = value
        self.default = default


class SinkConstructionError(LogFacadeError):
    """A sink could not be built; it is left out of the active set."""

    def __init__(self, *, sink: str, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            f"Failed to initialize {sink} sink: {reason}",
            code="SINK_CONSTRUCTION_FAILED",
            details={"sink": sink, **(details or {})},
        )
        self.sink = sink
        self.reason = reason


class InitializationFailure(LogFacadeError):
    """The sink set could not be assembled; the facade falls back to silence."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="INITIALIZATION_FAILED", details=details)


class UsageError(LogFacadeError, RuntimeError):
    """The facade was used in a state that does not allow the operation."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Logger not initialized. Call initialize() before {operation}().",
            code="FACADE_NOT_INITIALIZED",
            details={"operation": operation},
        )
        self.operation = operation


__all__ = [
    "LogFacadeError",
    "ConfigValueError",
    "SinkConstructionError",
    "InitializationFailure",
    "UsageError",
]
