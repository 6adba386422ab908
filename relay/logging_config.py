import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from contextvars import ContextVar
from typing import Optional

from relay import config

NO_CONNECTION = "-"

# Identity of the connection whose event is being handled
connection_id_var: ContextVar[str] = ContextVar("connection_id", default=NO_CONNECTION)


class ConnectionIdFilter(logging.Filter):
    """Logging filter to add the current connection identity to log records."""

    def filter(self, record):
        record.connection_id = connection_id_var.get()
        return True


class SafeFormatter(logging.Formatter):
    """Formatter that ensures connection_id always exists."""

    def format(self, record):
        if not hasattr(record, "connection_id"):
            record.connection_id = NO_CONNECTION
        return super().format(record)


_configured = False


def setup_logging(level: str = config.LOG_LEVEL, log_file: Optional[str] = config.LOG_FILE):
    global _configured
    root = logging.getLogger()
    if _configured:
        return root
    _configured = True
    root.setLevel(logging.WARNING)

    formatter = SafeFormatter(config.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(ConnectionIdFilter())
    root.addHandler(stream_handler)

    # Rotate file logs if a log file is configured
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(ConnectionIdFilter())
        root.addHandler(file_handler)

    logging.getLogger("relay").setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("relay").info("Logging is set up.")

    return root
