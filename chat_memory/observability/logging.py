"""
Structured logging for the chat memory package.

Memory operations attach the entry and session they touch through
``extra=memory_extra(memory_id=..., session_id=...)``. The formatter renders
those keys ahead of any other attributes, in JSON or one-line text.
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO, Tuple

# Attributes identifying what a record is about, rendered first.
MEMORY_KEYS = ("memory_id", "session_id")


class LogLevel(str, Enum):
    """Log levels matching Python logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level."""
        return getattr(logging, self.value)


def memory_extra(
    memory_id: Optional[str] = None,
    session_id: Optional[str] = None,
    **attributes: Any,
) -> Dict[str, Dict[str, Any]]:
    """
    Build the ``extra`` mapping for a log call about a memory operation.

    Unset ids are left out so records only name what they concern.
    """
    attrs: Dict[str, Any] = {}
    if memory_id is not None:
        attrs["memory_id"] = memory_id
    if session_id is not None:
        attrs["session_id"] = session_id
    attrs.update(attributes)
    return {"attributes": attrs}


@dataclass
class LogRecord:
    """A structured log record about the memory store."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    level: LogLevel = LogLevel.INFO
    message: str = ""
    logger_name: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def ordered_attributes(self) -> List[Tuple[str, Any]]:
        """Attributes with memory and session ids first, None values dropped."""
        keyed = [(k, self.attributes[k]) for k in MEMORY_KEYS if k in self.attributes]
        rest = [(k, v) for k, v in self.attributes.items() if k not in MEMORY_KEYS]
        return [(k, v) for k, v in keyed + rest if v is not None]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "logger": self.logger_name,
        }

        attributes = dict(self.ordered_attributes())
        if attributes:
            result["attributes"] = attributes
        if self.exception:
            result["exception"] = self.exception

        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_text(self) -> str:
        """Render as ``<time> [LEVEL] logger - message [memory_id=.. session_id=..]``."""
        text = (
            f"{self.timestamp.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]} "
            f"[{self.level.value}] {self.logger_name} - {self.message}"
        )

        attributes = self.ordered_attributes()
        if attributes:
            text += " [" + " ".join(f"{k}={v}" for k, v in attributes) + "]"

        if self.exception:
            text += f"\n{self.exception}"

        return text


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs memory log records as JSON or text."""

    def __init__(self, json_output: bool = True):
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        try:
            level = LogLevel(record.levelname)
        except ValueError:
            level = LogLevel.INFO

        attributes = getattr(record, "attributes", None)
        log_record = LogRecord(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
            level=level,
            message=record.getMessage(),
            logger_name=record.name,
            attributes=dict(attributes) if isinstance(attributes, dict) else {},
            exception=self.formatException(record.exc_info) if record.exc_info else None,
        )

        if self.json_output:
            return log_record.to_json()
        return log_record.to_text()


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    output: Optional[TextIO] = None,
    name: str = "chat_memory",
) -> logging.Logger:
    """
    Install a structured handler on the package logger.

    Handlers installed by an earlier call are replaced.

    Args:
        level: Log level
        json_output: Whether to output JSON
        output: Output stream (defaults to stderr)
        name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.to_python_level())

    for handler in list(logger.handlers):
        if isinstance(handler.formatter, StructuredFormatter):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(StructuredFormatter(json_output))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
