"""
Chat-side structures the memory system plugs into.
"""

from .messages import ChatMessage, MessageRole
from .hooks import ChatHooks


__all__ = [
    "ChatMessage",
    "MessageRole",
    "ChatHooks",
]
