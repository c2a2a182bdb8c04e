"""
Logging configuration for esresilience.

Console output goes through rich's RichHandler; an optional file handler
writes plain, parseable lines.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "esresilience"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int

    Returns:
        Logging level constant, INFO when the value is not recognised
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging for the esresilience logger tree.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        format_string: Optional format string for the plain console handler
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite
        console: Optional Rich Console for the RichHandler
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Use RichHandler for console output (default: True)

    Returns:
        The configured ``esresilience`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    # Only clear handlers from this logger, never the root's
    logger.handlers.clear()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        handler: logging.Handler
        if use_rich:
            handler = RichHandler(
                console=console or Console(stderr=True),
                level=level_int,
                show_time=True,
                show_path=True,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
                omit_repeated_times=False,
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level_int)
            handler.setFormatter(
                logging.Formatter(format_string or "%(levelname)s: %(asctime)s - %(name)s - %(message)s")
            )
        logger.addHandler(handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything the logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


def setup_logging_from_config(
    config: dict[str, Any], project_dir: Path | None = None, console: Console | None = None
) -> logging.Logger:
    """
    Setup logging from the ``logging`` section of an esresilience config.

    Recognised keys: ``level``, ``file``, ``file_mode``, ``format``,
    ``console_enabled`` and ``console_type`` (``rich`` or ``plain``).

    Args:
        config: Full configuration dictionary
        project_dir: Directory used to resolve a relative log file path
        console: Optional Rich Console for RichHandler

    Returns:
        The configured ``esresilience`` logger
    """
    logging_config = config.get("logging") or {}

    log_file = logging_config.get("file")
    if log_file and project_dir:
        log_file = Path(log_file)
        if not log_file.is_absolute():
            log_file = project_dir / log_file

    console_enabled = logging_config.get("console_enabled", True)
    return setup_logging(
        level=logging_config.get("level", logging.INFO),
        log_file=log_file,
        format_string=logging_config.get("format"),
        file_mode=logging_config.get("file_mode", "a"),
        console=console,
        console_enabled=console_enabled,
        use_rich=logging_config.get("console_type", "rich") == "rich",
    )


_logging_setup_done = False
_logging_setup_lock = threading.Lock()


def _auto_setup_logging() -> None:
    """Configure logging from the global config the first time a logger is requested."""
    global _logging_setup_done

    if _logging_setup_done:
        return

    with _logging_setup_lock:
        if _logging_setup_done:
            return

        # Someone already configured us explicitly
        if logging.getLogger(ROOT_LOGGER_NAME).handlers:
            _logging_setup_done = True
            return

        from esresilience.config.singleton import get_config

        config_obj = get_config()
        if config_obj is not None:
            setup_logging_from_config(config_obj.data)
            _logging_setup_done = True


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance.

    Sets up logging from the global config if it has been loaded and nothing
    configured the ``esresilience`` logger yet.

    Args:
        name: Logger name (default: "esresilience")

    Returns:
        Logger instance
    """
    _auto_setup_logging()

    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
