"""Logging configuration for popbox.

This module provides structlog configuration and utility functions
for sanitizing and formatting log output.
"""

import logging
import re
from typing import Any

import structlog

_SIZE_UNITS = ("KB", "MB", "GB", "TB")


def sanitize_for_log(text: str, max_length: int = 100) -> str:
    """Remove control characters and limit length for safe logging.

    Args:
        text: The text to sanitize.
        max_length: Maximum length of returned string.

    Returns:
        Sanitized text safe for logging.
    """
    if not text:
        return ""
    # ANSI codes first, their ESC byte is itself a control char
    text = re.sub(r"\x1b\[[0-9;]*m", "", text)
    text = re.sub(r"[\x00-\x1f\x7f]", "", text)
    return text[:max_length]


def format_size(size: int) -> str:
    """Render a byte count for humans, e.g. ``1.5 KB``.

    Args:
        size: Number of bytes (octets).

    Returns:
        The size in the largest unit that keeps the value >= 1.
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in _SIZE_UNITS:
        value /= 1024
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            break
    return f"{value:.1f} {unit}"


def configure_logging(json_format: bool = False, debug: bool = False) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs (for production).
        debug: If True, enable DEBUG level logging.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
