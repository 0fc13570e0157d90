"""JSON log output for agent runtimes.

Dispatch and lifecycle code logs with ``extra={"context": {...}}`` carrying
the agent key and, for questions, the packet id. ``JSONFormatter`` lifts that
mapping into the emitted record.
"""

import json
import logging
import logging.config
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path

from .config import Settings, load_settings

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the agent context when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context

        # packet ids may be ints or uuids
        return json.dumps(entry, default=str)


def setup_logging(
    log_level: str | None = None,
    log_file: str | Path | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Route the root logger through ``JSONFormatter``.

    Args:
        log_level: Overrides the level from settings.
        log_file: Overrides the rotating log file from settings.
        settings: Defaults to ``load_settings()``, so ``.env`` and the
                  DEVA_LOG_LEVEL / DEVA_LOG_FILE variables apply.
    """
    if settings is None:
        settings = load_settings()
    level = (log_level or settings.log_level).upper()
    target = log_file if log_file is not None else settings.log_file

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    }

    if target:
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(path),
            "maxBytes": ROTATE_BYTES,
            "backupCount": ROTATE_BACKUPS,
            "formatter": "json",
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": "deva.logging_config.JSONFormatter"}},
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)
