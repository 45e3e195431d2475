"""
Logging for cctracker.

Every module asks for its own logger through :func:`get_logger`. Each logger
writes to two places:

* the console, through prompt_toolkit, coloured when stderr is a terminal,
  at ``CCTRACKER_LOG_LEVEL`` (INFO unless set);
* ``logs/cctracker.log``, rotated by size, always at DEBUG so a cycle that
  went wrong overnight can be reconstructed afterwards.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

# -------------------- Configuration --------------------
LOGS_DIR: Path = Path(os.getenv("CCTRACKER_LOG_DIR") or Path(__file__).parents[3] / "logs").resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILENAME = "cctracker.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
RESET_COLOR = "\033[0m"


def console_level() -> int:
    """Console threshold from ``CCTRACKER_LOG_LEVEL``; unknown names fall back to INFO."""
    level = logging.getLevelName(os.getenv("CCTRACKER_LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


# -------------------- Formatters and handlers --------------------
class ColorFormatter(logging.Formatter):
    """Formatter that colours the whole line by severity."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        return f"{color}{line}{RESET_COLOR}" if color else line


class PromptToolkitHandler(logging.Handler):
    """Console handler that prints through prompt_toolkit so ANSI colours render on every platform."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """True when stderr is an interactive terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def get_log_filepath() -> Path:
    """Path of the shared log file all cctracker loggers append to."""
    return LOGS_DIR / LOG_FILENAME


_plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
_console_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else _plain_formatter

# One file handler for the whole process; several RotatingFileHandlers on the
# same file would each try to rotate it.
_file_handler: RotatingFileHandler | None = None


def _shared_file_handler() -> RotatingFileHandler:
    global _file_handler
    if _file_handler is None:
        _file_handler = RotatingFileHandler(
            get_log_filepath(),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        _file_handler.setLevel(logging.DEBUG)
        _file_handler.setFormatter(_plain_formatter)
    return _file_handler


# -------------------- Logger setup --------------------
def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and file handlers to a logger, once.

    Parameters
    ----------
    logger_name:
        Name of the logger to configure.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = PromptToolkitHandler()
    console_handler.setLevel(console_level())
    console_handler.setFormatter(_console_formatter)
    logger.addHandler(console_handler)
    logger.addHandler(_shared_file_handler())
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Return the cctracker logger called ``logger_name``, configuring it on first use."""
    return setup_logger(logger_name)


# -------------------- Uncaught exceptions --------------------
def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` replacement that sends uncaught exceptions to the log.

    KeyboardInterrupt keeps the default behaviour so Ctrl+C exits quietly.
    """
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


# -------------------- Library loggers --------------------
# discord.py's gateway heartbeats and aiohttp's access chatter drown out the tracker
QUIET_LIBRARIES = ("discord", "aiohttp", "websockets", "aiosqlite")

for library in QUIET_LIBRARIES:
    library_logger = logging.getLogger(library)
    library_logger.setLevel(logging.ERROR)
    library_logger.propagate = False
    library_logger.handlers = []

sys.excepthook = handle_exception
