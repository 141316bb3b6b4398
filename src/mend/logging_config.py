# mend/logging_config.py
"""
Opt-in logging setup for the `mend` logger.

The library only creates module loggers; nothing is configured until an
application (or the CLI) calls setup_logging().
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "mend"
DEFAULT_LOG_FILE = Path(".mend") / "logs" / "mend.log"

FORMATS = {
    "simple": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d]: %(message)s",
}

# Handlers installed by setup_logging(), so repeated calls replace them
_installed: list[logging.Handler] = []
_log_file: Path | None = None


def setup_logging(
    level: int | str = "INFO",
    *,
    console: bool = True,
    file: bool | str | Path = False,
    format: str = "simple",
    format_string: str | None = None,
    propagate: bool = True,
) -> logging.Logger:
    """
    Configure the `mend` logger.

    Args:
        level: Logging level name or number
        console: Attach a stderr handler
        file: True for the default log file, a path for a specific one
        format: "simple" or "detailed"
        format_string: Explicit format; overrides `format`
        propagate: Whether records also reach the root logger

    Returns:
        The configured `mend` logger
    """
    global _log_file

    if format_string is None:
        if format not in FORMATS:
            raise ValueError(f"Unknown format '{format}'. Valid: {', '.join(FORMATS)}")
        format_string = FORMATS[format]
    formatter = logging.Formatter(format_string)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        _installed.append(stream_handler)

    _log_file = None
    if file:
        _log_file = DEFAULT_LOG_FILE if file is True else Path(file)
        _log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(_log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        _installed.append(file_handler)

    for handler in _installed:
        logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = propagate
    logger.disabled = False
    return logger


def disable_logging() -> None:
    """Silence the `mend` logger entirely (useful in tests)."""
    logging.getLogger(LOGGER_NAME).disabled = True


def get_log_file_path() -> Path | None:
    """Path of the active log file, or None if file logging is off."""
    return _log_file
