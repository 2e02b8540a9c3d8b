"""Logging utilities for the ciconfig service and CLI."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "ciconfig"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the ciconfig hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def resolve_level(level: str | int) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    *, level: str | int = logging.INFO, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the ciconfig logger with console output and optional file sink."""
    effective = logging.DEBUG if verbose else resolve_level(level)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(effective)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when configured more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(effective)
    stream_handler.setFormatter(logging.Formatter("[ciconfig] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(effective)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger", "resolve_level"]
