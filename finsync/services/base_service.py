"""
Base Service Class.

Holds the injected logger for every service.  Services that act on behalf
of one record kind or owner pass that as context, and every line they log
carries it.
"""

from __future__ import annotations

from finsync.logger import ContextValue, StructuredLogger


class BaseService:
    """Base class for all service classes. Provides a (context-bound) logger."""

    def __init__(self, logger: StructuredLogger, **context: ContextValue) -> None:
        self._logger: StructuredLogger = logger.bind(**context) if context else logger
