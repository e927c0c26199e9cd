"""
Exception hierarchy for the chat memory package.
"""


class ChatMemoryError(Exception):
    """Base exception for chat memory errors."""
    pass


class EmbeddingError(ChatMemoryError):
    """Raised by embedding providers when a vector cannot be produced."""
    pass


class StorageError(ChatMemoryError):
    """Raised when persisted memory data cannot be read or written."""
    pass


class ConfigError(ChatMemoryError):
    """Raised when an explicitly requested configuration file is invalid."""
    pass
