"""
Observability module for Chat Memory - structured logging.
"""

from .logging import (
    LogLevel,
    LogRecord,
    StructuredFormatter,
    configure_logging,
    memory_extra,
)


__all__ = [
    "LogLevel",
    "LogRecord",
    "StructuredFormatter",
    "configure_logging",
    "memory_extra",
]
