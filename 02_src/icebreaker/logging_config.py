"""Structured logging configuration for Icebreaker."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Record attributes lifted into every JSON line when present
CONTEXT_FIELDS = ("user_id", "partner_id")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(user_id)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with the session it concerns."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class SessionContextFilter(logging.Filter):
    """Default missing context fields so TEXT_FORMAT never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in CONTEXT_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, None)
        return True


class SessionLogger(logging.LoggerAdapter):
    """Logger bound to one user's session.

    Per-call `extra` (e.g. partner_id) is merged over the bound user_id.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Setup logging for the service.

    Args:
        log_level: Log level name. Defaults to LOG_LEVEL env var or INFO.
        log_file: Path to log file. Defaults to 04_logs/app.log.
        log_format: "json" or "text". Defaults to LOG_FORMAT env var or json.
                    The log file is always JSON.
    """
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or str(DEFAULT_LOG_PATH)
    log_format = (log_format or os.getenv("LOG_FORMAT", "json")).lower()

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "session_context": {
                    "()": "icebreaker.logging_config.SessionContextFilter"
                },
            },
            "formatters": {
                "json": {"()": "icebreaker.logging_config.JSONFormatter"},
                "text": {"format": TEXT_FORMAT},
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": log_file,
                    "maxBytes": 10 * 1024 * 1024,  # 10 MB
                    "backupCount": 5,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "text" if log_format == "text" else "json",
                    "filters": ["session_context"],
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                # httpx logs every request at INFO; the SIM would flood the log
                "httpx": {"level": "WARNING"},
            },
            "root": {"level": log_level, "handlers": ["file", "console"]},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger (typically get_logger(__name__))."""
    return logging.getLogger(name)


def get_session_logger(name: str, user_id: str) -> SessionLogger:
    """Logger whose records all carry user_id."""
    return SessionLogger(logging.getLogger(name), {"user_id": user_id})
