"""
Centralized logging configuration for the auction house.

All loggers live under the `auctionhouse` namespace, one per subsystem
(engine, storage.sqlite, storage.manager, contract, cli). Console output is
colored and goes to stderr, leaving stdout to the CLI's JSON results; the
CLI additionally writes a plain-text log file.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import colorlog

ROOT_LOGGER = "auctionhouse"
LOG_FILE = "auctionhouse.log"

CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def resolve_level(level: Union[int, str]) -> int:
    """Accept a numeric level or a name such as 'debug' or 'WARNING'."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


class AuctionLogger:
    """Owns the handlers of the `auctionhouse` logger tree"""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: Union[int, str] = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = True,
        force: bool = False,
    ):
        """
        Install console (and optionally file) handlers.

        Library code calls this implicitly, console only, on the first
        `get_logger`. The CLI calls it again with `force=True` once its
        configuration is known.

        Args:
            level: Logging level, numeric or by name
            log_dir: Directory for the log file. If None, uses ./logs
            log_to_file: Whether to write the log file
            force: Replace handlers installed by an earlier call
        """
        if cls._initialized and not force:
            return

        level = resolve_level(level)
        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LOG_COLORS)
        )
        root_logger.addHandler(console_handler)

        cls._log_dir = None
        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(cls._log_dir / LOG_FILE)
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Args:
            name: Subsystem name (e.g., 'engine', 'storage.sqlite', 'cli')

        Returns:
            Logger instance
        """
        if not cls._initialized:
            cls.setup(log_to_file=False)

        return logging.getLogger(f"{ROOT_LOGGER}.{name}")

    @classmethod
    def log_file(cls) -> Optional[Path]:
        """Path of the active log file, if file logging is on."""
        return cls._log_dir / LOG_FILE if cls._log_dir else None


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return AuctionLogger.get_logger(name)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = True,
    force: bool = False,
):
    AuctionLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file, force=force)
