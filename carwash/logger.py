"""
Structured logging for the booking board.

Every record is written as one JSON object per line to stdout and, unless
disabled, to a size-rotated file.  All loggers live under the ``carwash``
namespace, so a logger created as ``StructuredLogger("booking")`` is
``logging.getLogger("carwash.booking")``.

Usage::

    log = StructuredLogger("booking")
    log.info("Slot booked", extra={"week": 12, "user": "ana@empresa.pt"})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO

from carwash.config import get_config

NAMESPACE = "carwash"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
}


def qualified_name(name: str) -> str:
    """Place *name* under the application namespace."""
    if name == NAMESPACE or name.startswith(NAMESPACE + "."):
        return name
    return f"{NAMESPACE}.{name}"


def _json_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    """Render a record as ``{"ts", "level", "logger", "msg"}``.

    Fields passed through ``extra`` are grouped under ``context`` (numbers
    and booleans keep their JSON type, everything else is stringified) and
    a traceback, when present, goes under ``exc``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        context = {
            key: _json_value(value)
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS
        }
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def _file_handler(
    path: str, max_bytes: int, backup_count: int
) -> Optional[RotatingFileHandler]:
    try:
        log_path = Path(path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        print(
            f"carwash: cannot open log file {path!r} ({exc}); logging to console only",
            file=sys.stderr,
        )
        return None


class StructuredLogger:
    """Injectable wrapper around a namespaced ``logging.Logger``.

    Handlers are attached the first time a given name is configured; later
    instances with the same name reuse them.  ``log_file=""`` keeps output
    on the console only.  Unset arguments fall back to ``AppConfig``.
    """

    def __init__(
        self,
        name: str = NAMESPACE,
        level: Optional[int] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        cfg = get_config()
        resolved_level = level if level is not None else cfg.LOG_LEVEL.upper()

        self._logger = logging.getLogger(qualified_name(name))
        self._logger.setLevel(resolved_level)
        self._logger.propagate = False

        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        path = cfg.LOG_FILE if log_file is None else log_file
        if path:
            handler = _file_handler(
                path,
                cfg.LOG_MAX_BYTES if max_bytes is None else max_bytes,
                cfg.LOG_BACKUP_COUNT if backup_count is None else backup_count,
            )
            if handler is not None:
                handler.setFormatter(formatter)
                self._logger.addHandler(handler)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._logger.exception(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = NAMESPACE) -> StructuredLogger:
    return StructuredLogger(name=name)
