"""
Logging configuration shared by the API process and the report worker.

Both processes log through ``backoffice.*`` loggers. Every record is stamped
with the process role (``api`` or ``report-worker``) so the two streams can
be told apart once they land in the same aggregator. Console output is
human-readable ``key=value`` text; the rotating file gets one JSON object per
line.
"""
import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from backoffice.config import LOG_SETTINGS

ROOT_LOGGER_NAME = "backoffice"
_STANDARD_FIELDS = ("timestamp", "level", "logger", "message")


class RoleFilter(logging.Filter):
    """Attach the process role to every record passing through a handler."""

    def __init__(self, role: str = "api"):
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "role": getattr(record, "role", None),
            "module": record.module,
            "line": record.lineno,
            "process_id": record.process,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        for key, value in (getattr(record, "extra_data", None) or {}).items():
            # structured fields never overwrite the envelope
            entry.setdefault(key if key not in _STANDARD_FIELDS else f"data_{key}", value)
        return json.dumps(entry, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    """Text formatter that appends structured fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            line += " | " + " ".join(f"{k}={v}" for k, v in extra_data.items())
        return line


class StructuredLogger:
    """
    Thin wrapper over :mod:`logging` that accepts structured fields as kwargs.

    ``None`` values are dropped. ``exc_info`` is forwarded to the underlying
    logger rather than recorded as a field.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs):
        exc_info = kwargs.pop("exc_info", None)
        fields = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={"extra_data": fields})

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)


def setup_logging(
    role: str = "api",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_console: bool = True,
) -> None:
    """
    Configure logging for one process.

    Args:
        role: Process role stamped on each record (``api`` or ``report-worker``)
        log_level: Level for ``backoffice`` loggers; defaults to ``LOG_LEVEL``
        log_file: Path of the rotating JSON log; ``None`` disables file output
        enable_console: Whether to log to stdout
    """
    level = (log_level or str(LOG_SETTINGS["level"])).upper()
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    # library loggers stay quiet unless something goes wrong
    library_levels = {"uvicorn": "INFO", "sqlalchemy.engine": "WARNING", "kombu": "WARNING", "amqp": "WARNING"}
    handlers: Dict[str, Dict[str, Any]] = {}

    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "text",
            "filters": ["role"],
            "level": level,
        }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": int(LOG_SETTINGS["max_bytes"]),
            "backupCount": int(LOG_SETTINGS["backup_count"]),
            "encoding": "utf-8",
            "formatter": "json",
            "filters": ["role"],
            "level": level,
        }

    handler_names = list(handlers)
    loggers: Dict[str, Dict[str, Any]] = {
        ROOT_LOGGER_NAME: {"level": level, "handlers": handler_names, "propagate": False},
    }
    for name, lib_level in library_levels.items():
        loggers[name] = {"level": lib_level, "handlers": handler_names, "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"role": {"()": RoleFilter, "role": role}},
        "formatters": {
            "json": {"()": JSONFormatter},
            "text": {
                "()": KeyValueFormatter,
                "format": "%(asctime)s [%(role)s] %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": "WARNING", "handlers": handler_names},
    })


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger under the ``backoffice`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return StructuredLogger(name)
    return StructuredLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    request_id: Optional[str] = None
) -> None:
    """
    Record an audit event (price revised, report requested, report rendered).

    Args:
        event_type: Short event name, e.g. ``price_revised``
        details: Event-specific fields
        request_id: Originating HTTP request, when there is one
    """
    get_logger("audit").info(
        f"Business event: {event_type}",
        event_type=event_type,
        request_id=request_id,
        **details
    )


def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    data: Dict[str, Any] = {"duration_ms": round(duration_ms, 2)}
    if additional_data:
        data.update(additional_data)
    get_logger("performance").info(f"Performance: {operation}", operation=operation, **data)
