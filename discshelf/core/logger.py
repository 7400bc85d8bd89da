"""
Logging configuration for discshelf.

This module sets up the logging system with multiple outputs:
    - Console: Colored level prefix, written through tqdm so that messages
      appear above the sync progress bar instead of breaking it
    - log_full_<timestamp>.log: Complete log of the run (DEBUG and above)
    - log_errors_<timestamp>.log: Only ERROR and CRITICAL level messages

Log File Locations:
    Log files are created in the directory given to setup_logging()
    (logging.directory in config.yaml, by default <data_dir>/logs).
    Each run creates new files with a unique timestamp.

Usage:
    from discshelf.core.logger import setup_logging, get_logger

    setup_logging(config.logging.directory)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Fetching collection")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = ("urllib3", "requests")


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that prefixes each message with a colored level name.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        message = f"{color}{record.levelname}{Style.RESET_ALL}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    tqdm redraws its bar in place with carriage returns; plain writes to the
    same stream would tear it. tqdm.write() prints above any active bar.

    Attributes:
        stream: The output stream (defaults to sys.stderr).

    Example:
        handler = TqdmLoggingHandler()
        handler.setFormatter(ColoredConsoleFormatter())
        logger.addHandler(handler)
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False, level: str = "INFO") -> None:
    """
    Configure the logging system for the application.

    Call once at startup, after the configuration is loaded.

    Args:
        log_dir: Directory where the per-run log files are created.
                 Created if it doesn't exist.
        verbose: Show DEBUG messages on the console.
        level: Console level when not verbose (logging.level in config.yaml).

    Behavior:
        1. Create log_dir if it doesn't exist
        2. Configure root logger level to DEBUG, replacing existing handlers
        3. Console handler (TqdmLoggingHandler) with colored level names
        4. Full log file: log_dir/log_full_{timestamp}.log (DEBUG)
        5. Error log file: log_dir/log_errors_{timestamp}.log (ERROR+)
        6. Raise urllib3/requests loggers to WARNING
    """
    colorama.just_fix_windows_console()

    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    shutdown_logging()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_handler = logging.FileHandler(log_dir / f"log_full_{timestamp}.log", mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(log_dir / f"log_errors_{timestamp}.log", mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called propagate to an
        unconfigured root logger; only warnings and above reach stderr.
    """
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """
    Flush, close and remove all root logger handlers.

    Called at application exit (and by setup_logging() before installing
    new handlers). Safe to call multiple times.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)
