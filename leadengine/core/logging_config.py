"""
Logging for the lead engine API and its maintenance scripts.

Records carry the thread name because bid fan-out writes run on a worker
pool; error payloads are passed through ``sanitize_log_data`` before they
are logged.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from leadengine.core.config import LOG_DIR, LOG_FILE_BACKUPS, LOG_FILE_MAX_BYTES, LOG_LEVEL

REDACTED = "***REDACTED***"

# Matched against each underscore-separated part of a key
SENSITIVE_KEY_PARTS = {"password", "token", "secret", "authorization", "credentials", "jwt"}
SENSITIVE_KEYS = {"api_key", "database_url", "secret_key"}

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "alembic.runtime.migration")

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(funcName)s:%(lineno)d - %(message)s"


def setup_logging(
    log_level: str = LOG_LEVEL,
    log_dir: Optional[str] = LOG_DIR,
    log_file: str = "leadengine.log",
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_level: Logging level name; unknown names fall back to INFO
        log_dir: Directory for the rotating log file, or None for console only
        log_file: File name inside ``log_dir``

    Returns:
        The configured root logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def _is_sensitive(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    if lowered in SENSITIVE_KEYS:
        return True
    return any(part in SENSITIVE_KEY_PARTS for part in lowered.split("_"))


def sanitize_log_data(data: Any) -> Any:
    """
    Copy of ``data`` with secret-looking values redacted.

    Nested dicts and lists are walked, so engine error details such as
    ``{"error": ..., "reasons": [...]}`` keep their shape.
    """
    if isinstance(data, dict):
        return {
            key: REDACTED if _is_sensitive(key) else sanitize_log_data(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [sanitize_log_data(item) for item in data]
    return data
