import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from .config import settings

ROOT_LOGGER_NAME = "budgetbook"

_THIRD_PARTY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
)


def setup_logging(
    app_log_level: Optional[str] = None,
    third_party_log_level: str = "WARNING",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        app_log_level: Level for ``budgetbook.*`` loggers (default: settings.LOG_LEVEL)
        third_party_log_level: Level for noisy library loggers
        log_file: Optional rotating log file (default: settings.LOG_FILE)
        max_file_size: Rotation threshold in bytes
        backup_count: Number of rotated files to keep

    Returns:
        The ``budgetbook`` logger
    """
    app_log_level = app_log_level or settings.LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    app_level = getattr(logging, app_log_level.upper(), logging.INFO)
    third_party_level = getattr(logging, third_party_log_level.upper(), logging.WARNING)

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(app_level)
    app_logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(app_level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        file_handler.setLevel(app_level)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    for logger_name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(third_party_level)

    app_logger.propagate = False
    return app_logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a logger namespaced under ``budgetbook``."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
