"""
Logging for every ModWarden component.

All component loggers write through the same two handlers: a colored
console handler printing via prompt_toolkit and one rotating file handler
for the session log under ``logs/``. Sharing the file handler keeps
rotation in one place no matter how many components log.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H-%M-%S"

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 3

# A restart within this many seconds keeps appending to the previous session file
SESSION_REUSE_SECONDS = 60

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

NOISY_LOGGERS = [
    "discord", "discord.gateway", "discord.client", "discord.http",
    "websockets", "aiohttp", "aiosqlite",
]

LOG_FILEPATH: Optional[Path] = None
_shared_handlers: List[logging.Handler] = []


class ColorFormatter(logging.Formatter):
    """Wraps each formatted record in the ANSI color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LOG_COLORS.get(record.levelname)
        if not color:
            return message
        return f"{color}{message}{RESET_COLOR}"


class PromptToolkitHandler(logging.Handler):
    """Console handler that prints through ``print_formatted_text`` so ANSI survives."""

    def __init__(self, formatter: Optional[logging.Formatter] = None):
        super().__init__()
        if formatter is not None:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


def get_log_filepath() -> Path:
    """
    Return the session log file, choosing it on first call.

    Returns:
        Path: ``logs/<timestamp>.log``, or today's newest log if it was
        written to within ``SESSION_REUSE_SECONDS``.
    """
    global LOG_FILEPATH
    if LOG_FILEPATH is not None:
        return LOG_FILEPATH

    now = datetime.now()
    todays_logs = sorted(
        LOGS_DIR.glob(f"{now:%Y-%m-%d}*.log"),
        key=lambda path: path.stat().st_mtime,
    )
    if todays_logs and now.timestamp() - todays_logs[-1].stat().st_mtime < SESSION_REUSE_SECONDS:
        LOG_FILEPATH = todays_logs[-1]
    else:
        LOG_FILEPATH = LOGS_DIR / f"{now.strftime(DATE_FORMAT)}.log"
    return LOG_FILEPATH


def _handlers() -> List[logging.Handler]:
    """Build the console and file handlers once; every logger reuses them."""
    if _shared_handlers:
        return _shared_handlers

    plain = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = PromptToolkitHandler(ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain)
    console.setLevel(logging.INFO)

    session_file = RotatingFileHandler(
        get_log_filepath(), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
    )
    session_file.setLevel(logging.DEBUG)
    session_file.setFormatter(plain)

    _shared_handlers.extend([console, session_file])
    return _shared_handlers


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the shared handlers to ``logger_name``; safe to call repeatedly."""
    component = logging.getLogger(logger_name)
    if not component.handlers:
        component.setLevel(logging.DEBUG)
        component.propagate = False
        for handler in _handlers():
            component.addHandler(handler)
    return component


def get_logger(logger_name: str) -> logging.Logger:
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook``: log uncaught errors, leave Ctrl+C to the default hook."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    get_logger("uncaught").critical(
        "Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback)
    )


def quiet_noisy_loggers() -> None:
    """Keep library chatter below ERROR out of the console and session file."""
    for name in NOISY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(logging.ERROR)
        library_logger.propagate = False
        library_logger.handlers = []


quiet_noisy_loggers()
sys.excepthook = handle_exception
