"""
Structured JSON Logging Module.

Every component receives a ``StructuredLogger`` and tags its records
with an ``event`` name (``LOGIN``, ``LOGIN_FAILED``, ``REGISTER`` …),
which is written as a top-level field so the authentication trail can
be filtered line by line.  Secret-bearing fields passed through
``extra`` are masked before any handler formats them.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from pocketauth.config import get_config

REDACTED: str = "***"

# ``extra`` keys whose values never reach a log sink.
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {"password", "password_hash", "new_password", "session_key", "token"}
)


class RedactingFilter(logging.Filter):
    """Mask sensitive ``extra`` values on a record in place."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in SENSITIVE_KEYS.intersection(record.__dict__):
            setattr(record, key, REDACTED)
        return True


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Each entry contains:
        - timestamp    (ISO-8601, UTC)
        - level
        - logger_name
        - event        (when the caller tagged the record)
        - message
        - extra        (remaining ``extra`` fields, JSON-native where possible)
        - exception    (formatted traceback, when present)
    """

    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime", "event"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
        }
        event: Optional[str] = getattr(record, "event", None)
        if event is not None:
            entry["event"] = str(event)
        entry["message"] = record.getMessage()

        extra_fields: dict[str, Any] = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            entry["extra"] = extra_fields

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """Injectable logger factory.

    The underlying ``logging.Logger`` is exposed via ``.logger``; the
    usual level methods are delegated to it.

    Usage::

        log = StructuredLogger(name="pocketauth.auth")
        log.info("User logged in: %s", "alice", extra={"event": "LOGIN"})
    """

    def __init__(
        self,
        name: str = "pocketauth",
        level: int = logging.INFO,
        stream: Union[TextIO, None] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        _cfg = get_config()

        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)

        # Reusing a name reuses its handlers.
        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        redactor = RedactingFilter()

        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        stream_handler.addFilter(redactor)
        self._logger.addHandler(stream_handler)

        resolved_log_file: str = log_file or _cfg.LOG_FILE
        try:
            log_path = Path(resolved_log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes if max_bytes is not None else _cfg.LOG_MAX_BYTES,
                backupCount=(
                    backup_count if backup_count is not None else _cfg.LOG_BACKUP_COUNT
                ),
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Could not create log file '%s': %s. "
                "Continuing with console logging only.",
                resolved_log_file,
                exc,
            )
            return
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redactor)
        self._logger.addHandler(file_handler)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = "pocketauth") -> StructuredLogger:
    """Create and return a ``StructuredLogger`` instance with the given *name*."""
    return StructuredLogger(name=name)
