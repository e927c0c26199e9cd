"""
Chat integration for the memory system.

Stores chat messages as memories automatically and renders recalled
memories as prompt context.
"""

import logging
from typing import Callable, List, Optional, Sequence

from ..chat.hooks import ChatHooks
from ..chat.messages import ChatMessage, MessageRole
from .importance import calculate_importance, lifecycle_importance
from .store import MemoryStore
from .types import DEFAULT_SOURCE, MemorySearchResult, StoreResult


logger = logging.getLogger(__name__)


MIN_STORABLE_LENGTH = 10
RELEVANT_MEMORY_LIMIT = 5
RELEVANT_MEMORY_THRESHOLD = 0.7

CONTEXT_HEADER = "--- Relevant Memories ---"
CONTEXT_FOOTER = "--- End of Memories ---"


def extract_text(message: ChatMessage) -> str:
    """Extract the plain text of a chat message."""
    return message.text()


def should_store_message(message: ChatMessage) -> bool:
    """
    Decide whether a message is worth remembering.

    Empty, very short (under 10 characters) and system messages are skipped.
    """
    text = extract_text(message)

    if not text.strip():
        return False

    if len(text) < MIN_STORABLE_LENGTH:
        return False

    if message.role == MessageRole.SYSTEM:
        return False

    return True


def format_memories_as_context(results: Sequence[MemorySearchResult]) -> str:
    """
    Format recalled memories as a block of prompt context.

    Each memory is numbered from 1 in the given order and shows its local
    creation time and similarity.

    Returns:
        The formatted block, or "" when there is nothing to show
    """
    if not results:
        return ""

    memory_texts = []
    for index, result in enumerate(results, 1):
        date = result.entry.metadata.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        memory_texts.append(
            f"[Memory {index}] ({date}, similarity: {result.similarity:.2f})\n"
            f"{result.entry.content}"
        )

    return f"\n\n{CONTEXT_HEADER}\n" + "\n\n".join(memory_texts) + f"\n{CONTEXT_FOOTER}\n\n"


class MemoryIntegration:
    """
    Glue between the chat lifecycle and the memory store.

    While memory is enabled, every user message and assistant response seen
    through the chat hooks is stored. Hooks are registered at most once, the
    first time ``ensure_hooks`` runs with memory enabled.

    Example:
        integration = MemoryIntegration(store, hooks, active_session=lambda: chat.session_id)
        ...
        store.memory_enabled = True
        integration.ensure_hooks()

        results = await integration.get_relevant_memories(user_text)
        prompt = format_memories_as_context(results) + user_text
    """

    def __init__(
        self,
        store: MemoryStore,
        hooks: ChatHooks,
        active_session: Optional[Callable[[], Optional[str]]] = None,
    ):
        """
        Initialize the integration.

        Args:
            store: The memory store to feed
            hooks: Chat lifecycle hooks to subscribe to
            active_session: Returns the current session id when a hook
                does not carry one
        """
        self._store = store
        self._hooks = hooks
        self._active_session = active_session or (lambda: None)
        self._hooks_registered = False
        self.ensure_hooks()

    @property
    def hooks_registered(self) -> bool:
        return self._hooks_registered

    def ensure_hooks(self) -> bool:
        """
        Register the lifecycle handlers if memory is enabled and they are
        not registered yet.

        Returns:
            Whether the handlers are registered
        """
        if self._store.memory_enabled and not self._hooks_registered:
            self.setup_automatic_memory_storage()
        return self._hooks_registered

    def setup_automatic_memory_storage(self) -> None:
        """Subscribe the store to the chat lifecycle hooks."""
        if self._hooks_registered:
            return

        self._hooks.on_assistant_response_end(self._on_assistant_response_end)
        self._hooks.on_after_send(self._on_after_send)
        self._hooks_registered = True
        logger.debug("Registered memory chat hooks")

    async def _on_assistant_response_end(self, message: str, session_id: Optional[str]) -> None:
        await self._store_from_hook(message, MessageRole.ASSISTANT, session_id)

    async def _on_after_send(self, message: str, session_id: Optional[str]) -> None:
        await self._store_from_hook(message, MessageRole.USER, session_id)

    async def _store_from_hook(
        self,
        message: str,
        role: MessageRole,
        session_id: Optional[str],
    ) -> None:
        if not self._store.memory_enabled:
            return

        await self._store.store_memory(
            message,
            source=DEFAULT_SOURCE,
            importance=lifecycle_importance(message, role),
            tags=[role.value],
            session_id=session_id if session_id is not None else self._active_session(),
        )

    async def store_message_as_memory(
        self,
        message: ChatMessage,
        session_id: Optional[str],
        source: str = DEFAULT_SOURCE,
    ) -> Optional[StoreResult]:
        """
        Store a structured chat message as memory.

        Args:
            message: The chat message
            session_id: Conversation partition
            source: Origin tag recorded in the metadata

        Returns:
            The store result, or None if the message was skipped
        """
        if not self._store.is_configured or not should_store_message(message):
            return None

        text = extract_text(message)

        try:
            return await self._store.store_memory(
                text,
                source=source,
                importance=calculate_importance(text, message.role),
                tags=[message.role.value],
                session_id=session_id,
            )
        except Exception as e:
            logger.error(f"Failed to store message as memory: {e}")
            return None

    async def get_relevant_memories(
        self,
        query: str,
        session_id: Optional[str] = None,
    ) -> List[MemorySearchResult]:
        """Retrieve memories relevant to a query."""
        if not self._store.is_configured:
            return []

        try:
            return await self._store.search_memories(
                query,
                limit=RELEVANT_MEMORY_LIMIT,
                threshold=RELEVANT_MEMORY_THRESHOLD,
                session_id=session_id,
            )
        except Exception as e:
            logger.error(f"Failed to retrieve relevant memories: {e}")
            return []

    def format_memories_as_context(self, results: Sequence[MemorySearchResult]) -> str:
        """Format recalled memories as prompt context."""
        return format_memories_as_context(results)
