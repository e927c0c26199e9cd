"""
Importance heuristics for chat messages.

Two heuristics exist side by side. ``calculate_importance`` is used when a
structured chat message is stored explicitly. ``lifecycle_importance`` is the
flat rule applied by the automatic chat lifecycle hooks.
"""

from typing import Union

from ..chat.messages import MessageRole


BASE_IMPORTANCE = 0.5
MAX_IMPORTANCE = 1.0

LONG_MESSAGE_LENGTH = 100
VERY_LONG_MESSAGE_LENGTH = 500


def _role_value(role: Union[MessageRole, str]) -> str:
    return role.value if isinstance(role, MessageRole) else str(role)


def calculate_importance(text: str, role: Union[MessageRole, str]) -> float:
    """
    Score how worth remembering a message is.

    Starts at 0.5 and adds 0.1 each for: more than 100 characters, more than
    500 characters, containing a question mark, and coming from the user.
    The total is capped at 1.0.

    Args:
        text: Message text
        role: Sender role

    Returns:
        Importance score between 0 and 1
    """
    score = BASE_IMPORTANCE

    # Longer messages are typically more important
    if len(text) > LONG_MESSAGE_LENGTH:
        score += 0.1
    if len(text) > VERY_LONG_MESSAGE_LENGTH:
        score += 0.1

    if "?" in text:
        score += 0.1

    if _role_value(role) == MessageRole.USER.value:
        score += 0.1

    return min(round(score, 10), MAX_IMPORTANCE)


def lifecycle_importance(text: str, role: Union[MessageRole, str]) -> float:
    """
    Flat importance used by the automatic chat hooks.

    User messages score 0.6; assistant replies score 0.7 when longer than
    100 characters and 0.5 otherwise.
    """
    if _role_value(role) == MessageRole.USER.value:
        return 0.6
    return 0.7 if len(text) > LONG_MESSAGE_LENGTH else 0.5
