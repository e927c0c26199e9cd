"""
Chat message structures consumed by the memory integration.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Union


class MessageRole(str, Enum):
    """Role of the message sender."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# A content part is a mapping such as {"type": "text", "text": "..."};
# non-text parts (images, audio) carry other keys and are ignored here.
ContentPart = Dict[str, Any]


@dataclass
class ChatMessage:
    """Represents a message in a chat conversation."""
    role: MessageRole
    content: Union[str, List[ContentPart]]

    def text(self) -> str:
        """
        Extract the plain text of the message.

        String content is returned as-is; multi-part content joins the
        text parts with a single space.
        """
        if isinstance(self.content, str):
            return self.content

        if isinstance(self.content, list):
            return " ".join(
                part.get("text") or ""
                for part in self.content
                if part.get("type") == "text"
            )

        return ""

    def to_dict(self) -> dict:
        """Convert to dictionary format."""
        return {
            "role": self.role.value,
            "content": self.content,
        }
