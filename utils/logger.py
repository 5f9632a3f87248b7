"""
Logging configuration for the application.
"""
import logging
import os
import sys
from pathlib import Path

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Map a LOG_LEVEL style name (error/warn/info/debug) to a logging level."""
    if not name:
        return default
    return _LEVELS.get(name.strip().lower(), default)


def setup_logger(name: str = "web_navigator", level: int | None = None) -> logging.Logger:
    """
    Set up and configure a logger for the application.

    Args:
        name: Logger name
        level: Logging level (defaults to the LOG_LEVEL environment variable, else INFO)

    Returns:
        Configured logger instance
    """
    if level is None:
        level = level_from_name(os.environ.get("LOG_LEVEL"))

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    # Console handler with formatted output
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    # Optional file handler
    if os.environ.get("LOG_TO_FILE", "1").strip().lower() in {"0", "false", "no", "off"}:
        return logger

    log_dir = Path(os.environ.get("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(
        log_dir / "web_navigator.log",
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    logger.addHandler(file_handler)

    return logger


def set_level(level: int) -> None:
    """Apply a level to every logger configured through setup_logger."""
    for logger in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(logger, logging.Logger) and logger.handlers:
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)
