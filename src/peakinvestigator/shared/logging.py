"""Centralized logging utilities."""

import logging
import sys
from typing import Optional, Mapping, Any, Dict, Union
from pathlib import Path

DEFAULT_FORMAT = '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'

# Chatty transport loggers, kept at WARNING unless debugging
NOISY_LOGGERS = ('paramiko', 'urllib3')

# Request fields that must never reach a log line
SECRET_FIELDS = frozenset({'Code', 'Password', 'password', 'code'})


def setup_logger(
    name: str,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger for command line use.

    Args:
        name: Logger name, normally ``peakinvestigator``
        level: Level as a number or a name such as ``"debug"``
        log_file: Optional file that receives the same records
        format_string: Custom format string

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        name_level = logging.getLevelName(level.upper())
        if not isinstance(name_level, int):
            raise ValueError(f"Unknown log level: {level}")
        level = name_level

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt='%H:%M:%S')
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # paramiko logs every SSH packet negotiation step at INFO
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Records propagate to the ``peakinvestigator`` root logger configured by
    ``setup_logger``; nothing is attached here so library use stays quiet.
    """
    return logging.getLogger(name)


def redact(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of request fields with secrets masked."""
    return {
        key: ('***' if key in SECRET_FIELDS else value)
        for key, value in fields.items()
    }
