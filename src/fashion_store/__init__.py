"""Fashion Store back-office core.

Importing the package sets up the shared ``log`` object: a rotating file under
``<project>/.logs`` plus stderr. Both start at ``INFO``; once a configuration
is loaded, :func:`set_log_level` applies the ``[Logging] Level`` entry.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union


PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_DIR = PROJECT_ROOT / ".logs"
LOG_FILE = LOG_DIR / "fashion_store.log"
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DEFAULT_LOG_LEVEL = "INFO"


def resolve_log_level(level: Union[str, int]) -> int:
    """Translate a level name such as ``"debug"`` or a number into a logging level.

    Raises:
        ValueError: If ``level`` does not name a standard logging level.
    """

    if isinstance(level, int) and not isinstance(level, bool):
        return level
    name = str(level).strip().upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def _build_handlers(formatter: logging.Formatter) -> list:
    handlers = []
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=5, encoding="utf-8"))
    except OSError as exc:
        print(f"Warning: unable to open log file '{LOG_FILE}': {exc}", file=sys.stderr)
    handlers.append(logging.StreamHandler(sys.stderr))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _configure_logging() -> logging.Logger:
    logger = logging.getLogger(__name__)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in _build_handlers(formatter):
        logger.addHandler(handler)
    logger.setLevel(resolve_log_level(DEFAULT_LOG_LEVEL))
    return logger


def set_log_level(level: Union[str, int]) -> int:
    """Apply ``level`` to the package logger and return the numeric value.

    Handlers carry no level of their own, so the logger's level decides what
    reaches both the file and stderr.
    """

    numeric = resolve_log_level(level)
    log.setLevel(numeric)
    return numeric


log = _configure_logging()
log.info("Logger initialized for the 'fashion_store' package.")
