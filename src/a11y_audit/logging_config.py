"""Logging configuration for the accessibility audit.

Progress lines go to stdout in a short form; an optional log file gets the
full timestamped record for later inspection of failed or retried checks.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = '%(asctime)s %(levelname)s %(message)s'
CONSOLE_DEBUG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# HTTP and browser driver chatter drowns the per-URL progress lines
QUIET_LOGGERS = ('httpx', 'httpcore', 'asyncio', 'playwright')


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging for an audit run.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Optional path receiving a detailed copy of every record
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(
        CONSOLE_DEBUG_FORMAT if numeric_level <= logging.DEBUG else CONSOLE_FORMAT,
        datefmt='%H:%M:%S',
    ))
    handlers = [console]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
