from popbox.core.logging import configure_logging, format_size, sanitize_for_log
from popbox.core.timeout import DEFAULT_TIMEOUT, with_timeout

__all__ = [
    "DEFAULT_TIMEOUT",
    "configure_logging",
    "format_size",
    "sanitize_for_log",
    "with_timeout",
]
