"""
Structured JSON Logging.

Every log line is a single JSON object so that audit events, repository
warnings and service failures can be shipped to a log pipeline and
queried by field.  ``StructuredLogger`` is the injectable wrapper used
throughout the package; ``get_logger`` builds one from the configured
defaults.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO, Union

JsonScalar = Union[str, int, float, bool, None]


def _json_scalar(value: object) -> JsonScalar:
    """Keep JSON-native scalars as they are; stringify anything else (UUIDs, datetimes)."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    """Render a ``LogRecord`` as one JSON object.

    Keys: ``timestamp`` (ISO-8601 UTC), ``level``, ``logger_name``,
    ``message``; ``extra`` when the caller passed structured fields and
    ``exception`` when a traceback is attached.
    """

    _RESERVED: frozenset[str] = frozenset(
        logging.LogRecord("", 0, "", 0, "", (), None).__dict__
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: _json_scalar(value)
            for key, value in vars(record).items()
            if key not in self._RESERVED
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


def _file_handler(
    path: str, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(log_path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


class StructuredLogger:
    """Injectable JSON logger.

    Writes to *stream* (stdout by default) and to a rotating log file.
    Unset arguments fall back to ``AppConfig``.  Handlers are attached
    only the first time a given *name* is used, so repeated construction
    does not duplicate output.

    Usage::

        log = StructuredLogger(name="family_budget.invites")
        log.info("Invite sweep finished", extra={"expired": 3})
    """

    def __init__(
        self,
        name: str = "family_budget",
        level: Optional[int] = None,
        stream: Union[TextIO, None] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        from family_budget.config import get_config
        cfg = get_config()

        resolved_level = level if level is not None else cfg.log_level
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(resolved_level)
        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setLevel(resolved_level)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        path = log_file or cfg.LOG_FILE
        try:
            file_handler = _file_handler(
                path,
                max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
                backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT,
            )
        except OSError as exc:
            self._logger.warning(
                "Could not open log file '%s': %s; logging to console only.", path, exc,
            )
            return
        file_handler.setLevel(resolved_level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    @property
    def logger(self) -> logging.Logger:
        """The wrapped ``logging.Logger``."""
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: object) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._logger.exception(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = "family_budget") -> StructuredLogger:
    """Return a ``StructuredLogger`` for *name* using the configured defaults."""
    return StructuredLogger(name=name)
