"""
Interceptors for routing standard library logging through the facade.
"""

from __future__ import annotations

import logging
from typing import Optional

from .core import FacadeBoundLogger, LoggerFacade
from .exceptions import UsageError
from .levels import Level


class FacadeHandler(logging.Handler):
    """
    Redirect standard library log records into a facade.

    Lets third-party libraries that log through ``logging`` share the
    facade's sinks. Records are dropped while the facade is not active.
    One facade handle is kept per stdlib logger name; handles outlive a
    shutdown and resume after the next initialize.
    """

    def __init__(self, facade: LoggerFacade, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._facade = facade
        self._handles: dict[str, FacadeBoundLogger] = {}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if not self._facade.is_active:
                return
            # Format message using stdlib's formatting (handles %s args)
            msg = self.format(record)
            try:
                logger = self._handle(record.name or "stdlib")
            except UsageError:
                # Facade shut down after the is_active check.
                return
            logger.log(Level.from_stdlib(record.levelno), msg)
        except Exception:
            self.handleError(record)

    def _handle(self, name: str) -> FacadeBoundLogger:
        # Called under Handler.lock.
        logger = self._handles.get(name)
        if logger is None:
            logger = self._handles[name] = self._facade.get_logger(name)
        return logger


def intercept_stdlib(
    facade: LoggerFacade,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.NOTSET,
) -> FacadeHandler:
    """Attach a ``FacadeHandler`` to ``logger`` (root by default), replacing an earlier one."""
    target = logger or logging.getLogger()
    for handler in list(target.handlers):
        if isinstance(handler, FacadeHandler):
            target.removeHandler(handler)
    handler = FacadeHandler(facade, level)
    target.addHandler(handler)
    return handler


__all__ = ["FacadeHandler", "intercept_stdlib"]
