"""Logging for the i18n command line tools.

Console output goes through ``tqdm.write`` so log lines never tear the
scanning progress bar apart.
"""
import logging
import os
import sys
from typing import List, Optional

from tqdm import tqdm

LOGGER_NAME = "i18n_tools"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(logging.Handler):
    """Writes records to stderr with ``tqdm.write``."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def resolve_level(log_level_str: str) -> int:
    """``'debug'`` -> ``logging.DEBUG``; unknown names mean INFO."""
    level = logging.getLevelName(log_level_str.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(log_file_path: str) -> logging.FileHandler:
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return logging.FileHandler(log_file_path, encoding='utf-8')


def setup_logger(log_level_str: str, log_file_path: Optional[str] = None, log_to_console: bool = True) -> logging.Logger:
    """
    Configure the logger shared by the extract, export, sort and build commands.

    The command line configures logging twice: once before the project
    settings are known and again once they are loaded. Handlers from the
    previous call are closed and replaced.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
        log_file_path: Optional path to a log file; its directory is created.
        log_to_console: Whether to log to stderr.

    Returns:
        The configured ``i18n_tools`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(log_level_str))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    handlers: List[logging.Handler] = []
    if log_file_path:
        handlers.append(_file_handler(log_file_path))
    if log_to_console:
        handlers.append(TqdmLoggingHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
