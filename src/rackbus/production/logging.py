"""
Production Logging

Console logging with colours and optional rotating log files.
"""

import logging
import sys
from typing import Optional
from pathlib import Path
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class Color:
    """ANSI escape sequences for console output"""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    GRAY = "\033[90m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    WHITE = "\033[97m"


class ProductionFormatter(logging.Formatter):
    """Formatter that colours console output by level"""

    def __init__(self, include_colors: bool = True, fmt: str = LOG_FORMAT):
        super().__init__(fmt)
        self.include_colors = include_colors and sys.stdout.isatty()

    def format(self, record):
        formatted = super().format(record)

        if self.include_colors:
            formatted = self._add_colors(formatted, record.levelno)

        return formatted

    def _add_colors(self, message: str, level: int) -> str:
        """Add colors based on log level"""
        colors = {
            logging.DEBUG: Color.GRAY,
            logging.INFO: Color.WHITE,
            logging.WARNING: Color.YELLOW,
            logging.ERROR: Color.RED,
            logging.CRITICAL: Color.RED + Color.BOLD,
        }

        color = colors.get(level, Color.WHITE)
        return f"{color}{message}{Color.RESET}"


class ProductionLogger:
    """Logger with a console handler and an optional rotating file handler"""

    def __init__(self, name: str, log_file: Optional[Path] = None,
                 verbose: bool = False, max_file_size: int = 10*1024*1024,  # 10MB
                 backup_count: int = 5):
        self.name = name
        self.verbose = verbose
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        # Repeated setup must not stack handlers
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self._setup_console_handler()
        if log_file:
            self._setup_file_handler(Path(log_file))

    def _setup_console_handler(self):
        """Setup console logging handler with colors"""
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ProductionFormatter(include_colors=True))
        self.logger.addHandler(handler)

    def _setup_file_handler(self, log_file: Path):
        """Setup file logging handler with rotation"""
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)

            handler = RotatingFileHandler(
                log_file,
                maxBytes=self.max_file_size,
                backupCount=self.backup_count,
                encoding='utf-8'
            )
            handler.setFormatter(ProductionFormatter(include_colors=False))
            self.logger.addHandler(handler)

        except OSError as e:
            self.logger.warning(f"Failed to setup file logging: {e}")


def setup_production_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the rackbus package

    Args:
        verbose: Enable DEBUG output (includes every decoded event)
        log_file: Optional log file path

    Returns:
        Configured logger instance
    """
    production_logger = ProductionLogger(
        'rackbus',
        log_file=log_file,
        verbose=verbose,
    )

    return production_logger.logger
