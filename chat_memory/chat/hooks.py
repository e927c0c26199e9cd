"""
Chat lifecycle hooks.

The chat layer emits two events: a user message was sent, and an assistant
response finished. Subscribers receive the message text and the active
session id.
"""

import logging
from typing import Awaitable, Callable, List, Optional


logger = logging.getLogger(__name__)


HookHandler = Callable[[str, Optional[str]], Awaitable[None]]


class ChatHooks:
    """Registry and dispatcher for chat lifecycle handlers."""

    def __init__(self):
        self._after_send: List[HookHandler] = []
        self._assistant_response_end: List[HookHandler] = []

    def on_after_send(self, handler: HookHandler) -> None:
        """Subscribe to "user message sent"."""
        self._after_send.append(handler)

    def on_assistant_response_end(self, handler: HookHandler) -> None:
        """Subscribe to "assistant response produced"."""
        self._assistant_response_end.append(handler)

    def handler_count(self) -> int:
        """Total number of subscribed handlers."""
        return len(self._after_send) + len(self._assistant_response_end)

    async def emit_after_send(self, message: str, session_id: Optional[str] = None) -> None:
        """Notify handlers that a user message was sent."""
        await self._dispatch(self._after_send, message, session_id)

    async def emit_assistant_response_end(
        self,
        message: str,
        session_id: Optional[str] = None,
    ) -> None:
        """Notify handlers that an assistant response finished."""
        await self._dispatch(self._assistant_response_end, message, session_id)

    async def _dispatch(
        self,
        handlers: List[HookHandler],
        message: str,
        session_id: Optional[str],
    ) -> None:
        # A failing handler must not break the chat flow or starve the others
        for handler in list(handlers):
            try:
                await handler(message, session_id)
            except Exception as e:
                logger.error(f"Chat hook handler failed: {e}", exc_info=True)
