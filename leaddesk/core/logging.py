"""Logging setup for the console data layer.

Modules log event-style messages (`cache.prefetch_failed`) and put the
details in `extra=`. The JSON formatter writes those fields out as-is, so
the rotating file under `<DATA_DIR>/logs/` stays machine-readable even when
the console handler prints plain text.
"""

from __future__ import annotations

import json
import logging
import logging.config
from pathlib import Path
from typing import Any

# LogRecord attributes that are not user-supplied `extra=` fields.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys() | {"message", "asctime"}
)

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class JsonFormatter(logging.Formatter):
    """One JSON object per record, including `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False, default=str)


class EnvironmentFilter(logging.Filter):
    """Stamps every record with the deployment environment."""

    def __init__(self, environment: str) -> None:
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "environment"):
            record.environment = self.environment
        return True


def build_logging_config(settings) -> dict[str, Any]:
    """dictConfig for `settings`; creates the log directory if needed."""

    level = (settings.log_level or "INFO").upper()
    if settings.log_file:
        log_file = Path(settings.log_file).expanduser()
    else:
        log_file = settings.data_dir / "logs" / "app.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "environment": {
                "()": "leaddesk.core.logging.EnvironmentFilter",
                "environment": settings.environment,
            },
        },
        "formatters": {
            "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
            "json": {"()": "leaddesk.core.logging.JsonFormatter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json" if settings.log_json else "plain",
                "filters": ["environment"],
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": level,
                "formatter": "json",
                "filters": ["environment"],
                "filename": str(log_file),
                "maxBytes": LOG_FILE_MAX_BYTES,
                "backupCount": LOG_FILE_BACKUPS,
                "encoding": "utf-8",
            },
        },
        "root": {"level": level, "handlers": ["console", "file"]},
        # aiohttp client chatter is noise at INFO.
        "loggers": {"aiohttp": {"level": "WARNING"}},
    }


_configured = False


def configure_logging(settings=None) -> None:
    """Install the console's logging config; later calls are no-ops."""

    global _configured
    if _configured:
        return

    if settings is None:
        from leaddesk.core.settings import get_settings

        settings = get_settings()

    logging.config.dictConfig(build_logging_config(settings))
    logging.captureWarnings(True)
    _configured = True


__all__ = ["EnvironmentFilter", "JsonFormatter", "build_logging_config", "configure_logging"]
