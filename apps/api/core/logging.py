"""
Logging setup.

Services log through ``logging.getLogger(__name__)`` and attach structured
context as ``extra={"extra_fields": {...}}``. In JSON mode those fields are
merged into the emitted record; in text mode they are dropped.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from core.config import settings

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=str)


def setup_logging() -> logging.Logger:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    use_json = settings.LOG_FORMAT == "json" or settings.is_production

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers[:] = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
