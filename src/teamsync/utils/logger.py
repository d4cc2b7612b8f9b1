#!/usr/bin/env python3
"""
Logging utilities for teamsync.

This module provides a centralized logging system with support for different
log levels, colored console output, and rotating file logging.
"""

import os
import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Dict

from colorama import init as colorama_init, Fore, Style
from rich.console import Console
from rich.logging import RichHandler

from .platform import platform_detector

colorama_init()

FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(filename)s:%(lineno)d - %(message)s"
)
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for plain stream output."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }

    def __init__(self, fmt: str = None, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        original_levelname = record.levelname
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class TeamSyncLogger:
    """Named logger with a console handler and a rotating log file."""

    def __init__(self, name: str = 'teamsync'):
        self.name = name
        self.logger = logging.getLogger(name)

        # Child loggers propagate to the 'teamsync' root logger
        if name != 'teamsync' and name.startswith('teamsync.'):
            return

        self.logger.setLevel(logging.INFO)
        if self.logger.handlers:
            return

        self._setup_handlers()

    def _setup_handlers(self):
        """Setup logging handlers for console and file output."""
        if sys.stderr.isatty():
            console_handler = RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=True
            )
            console_handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(
                ColoredFormatter(
                    "[%(levelname)s] %(name)s: %(message)s",
                    use_colors="NO_COLOR" not in os.environ
                )
            )

        console_handler.setLevel(logging.INFO)
        self.logger.addHandler(console_handler)

        self._setup_file_handler()

    def _setup_file_handler(self):
        """Setup the rotating file handler under the user config directory."""
        try:
            log_dir = platform_detector.get_config_dir() / 'teamsync' / 'logs'
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / 'teamsync.log',
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=5
            )
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(file_handler)

        except OSError as e:
            self.logger.warning(f"Could not setup file logging: {e}")

    def set_level(self, level: str):
        """Set the logging level."""
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

        self.logger.setLevel(log_level)

        for handler in self.logger.handlers:
            if not isinstance(handler, logging.handlers.RotatingFileHandler):
                handler.setLevel(log_level)

    def debug(self, message: str, *args, **kwargs):
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self.logger.error(message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        self.logger.critical(message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(message, *args, **kwargs)


# Global logger instances
_loggers: Dict[str, TeamSyncLogger] = {}


def get_logger(name: str = 'teamsync') -> TeamSyncLogger:
    """Get or create a logger instance."""
    if name not in _loggers:
        if name != 'teamsync' and 'teamsync' not in _loggers:
            _loggers['teamsync'] = TeamSyncLogger('teamsync')
        _loggers[name] = TeamSyncLogger(name)
    return _loggers[name]


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[Path] = None,
    verbose: bool = False
):
    """Setup logging configuration."""
    if verbose:
        level = 'DEBUG'

    logger = get_logger()
    logger.set_level(level)

    if log_file:
        try:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))

            logger.logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")

        except OSError as e:
            logger.warning(f"Could not setup custom log file {log_file}: {e}")
