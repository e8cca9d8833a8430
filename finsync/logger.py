"""
Structured JSON Logging Module.

Every FinSync log line is one JSON object, so cache and sync events can be
grepped and aggregated by field (``event``, ``kind``, ``owner_id``...).

``StructuredLogger`` owns the handler setup for one named logger.
``bind()`` derives a view of the same logger that stamps fixed context
fields on every record, which is how coordinators tag their output with
the record kind and owner they serve.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO, Union

ContextValue = Union[str, int, float, bool, None]

_ROOT_NAME: str = "finsync"


class JSONFormatter(logging.Formatter):
    """Formats log records as structured JSON objects.

    Each log entry contains:
        - timestamp  (ISO-8601, UTC)
        - level
        - logger_name
        - message
        - extra      (context fields, JSON scalars kept as-is, others as ``str``)
        - exception  (formatted traceback, when present)
    """

    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra_fields = {
            key: _json_scalar(value)
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            entry["extra"] = extra_fields

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


def _json_scalar(value: object) -> ContextValue:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def qualified_name(name: str) -> str:
    """Place *name* under the ``finsync`` logger namespace."""
    if name == _ROOT_NAME or name.startswith(f"{_ROOT_NAME}."):
        return name
    return f"{_ROOT_NAME}.{name}"


class StructuredLogger:
    """Injectable JSON logger.

    Usage::

        log = StructuredLogger(name="sync.transactions")
        log.info("Cache warmed", extra={"event": "cache_warm"})

        bound = log.bind(kind="transactions", owner_id="u-1")
        bound.warning("Serving snapshot")   # extra carries kind and owner_id

    Parameters
    ----------
    name:
        Logger name; placed under the ``finsync.`` namespace.
    level:
        Logging level; defaults to ``AppConfig.LOG_LEVEL``.
    stream:
        Console stream, ``sys.stdout`` by default.
    log_file, max_bytes, backup_count:
        Rotating file settings; default to the ``LOG_*`` config fields.
        An unwritable log file degrades to console-only logging.
    """

    def __init__(
        self,
        name: str = _ROOT_NAME,
        level: Optional[int] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        # Lazy import: config itself logs during validation.
        from finsync.config import get_config
        cfg = get_config()

        resolved_level = level if level is not None else logging.getLevelName(cfg.LOG_LEVEL)
        self._logger: logging.Logger = logging.getLogger(qualified_name(name))
        self._logger.setLevel(resolved_level)
        self._context: dict[str, ContextValue] = {}

        # One set of handlers per logger name, however often it is constructed.
        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        resolved_log_file = log_file or cfg.LOG_FILE
        try:
            log_path = Path(resolved_log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
                backupCount=backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            self._logger.addHandler(file_handler)
        except OSError as exc:
            self._logger.warning(
                "Could not create log file '%s': %s. Continuing with console logging only.",
                resolved_log_file,
                exc,
            )

    # -- Context binding ------------------------------------------------------

    def bind(self, **context: ContextValue) -> StructuredLogger:
        """Return a view of this logger that adds *context* to every record.

        Per-call ``extra`` fields win over bound ones with the same key.
        """
        bound = object.__new__(StructuredLogger)
        bound._logger = self._logger
        bound._context = {**self._context, **context}
        return bound

    @property
    def context(self) -> Mapping[str, ContextValue]:
        return dict(self._context)

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying ``logging.Logger`` directly."""
        return self._logger

    # -- Convenience delegates ------------------------------------------------

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **self._with_context(kwargs))

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **self._with_context(kwargs))

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **self._with_context(kwargs))

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **self._with_context(kwargs))

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.critical(msg, *args, **self._with_context(kwargs))

    def _with_context(self, kwargs: dict[str, object]) -> dict[str, object]:
        if not self._context:
            return kwargs
        extra = kwargs.get("extra")
        merged: dict[str, object] = dict(self._context)
        if isinstance(extra, Mapping):
            merged.update(extra)
        return {**kwargs, "extra": merged}


def get_logger(name: str = _ROOT_NAME) -> StructuredLogger:
    """Create a ``StructuredLogger`` for *name* with configured defaults."""
    return StructuredLogger(name=name)
