"""
Tests for chat hooks and the memory chat integration.
"""

from datetime import datetime, timezone

import pytest

from chat_memory.chat.hooks import ChatHooks
from chat_memory.chat.messages import ChatMessage, MessageRole
from chat_memory.memory.integration import (
    MemoryIntegration,
    extract_text,
    format_memories_as_context,
    should_store_message,
)
from chat_memory.memory.types import MemoryEntry, MemoryMetadata, MemorySearchResult


class TestChatMessage:
    """Test chat message text extraction."""

    def test_string_content(self):
        """String content is returned unchanged."""
        message = ChatMessage(role=MessageRole.USER, content="hello there")
        assert extract_text(message) == "hello there"

    def test_multipart_content(self):
        """Text parts are joined with a space; other parts are ignored."""
        message = ChatMessage(role=MessageRole.USER, content=[
            {"type": "text", "text": "look at"},
            {"type": "image_url", "image_url": {"url": "http://x/cat.png"}},
            {"type": "text", "text": "this picture"},
        ])
        assert extract_text(message) == "look at this picture"

    def test_to_dict(self):
        """Role is serialized by value."""
        message = ChatMessage(role=MessageRole.ASSISTANT, content="hi")
        assert message.to_dict() == {"role": "assistant", "content": "hi"}


class TestShouldStoreMessage:
    """Test the storage filter."""

    @pytest.mark.parametrize("role,content,expected", [
        (MessageRole.USER, "I really like green tea", True),
        (MessageRole.ASSISTANT, "Noted, green tea it is", True),
        (MessageRole.SYSTEM, "You are a helpful assistant", False),
        (MessageRole.USER, "short", False),
        (MessageRole.USER, "123456789", False),
        (MessageRole.USER, "1234567890", True),
        (MessageRole.USER, "              ", False),
        (MessageRole.USER, [{"type": "image_url", "image_url": {}}], False),
    ])
    def test_filter(self, role, content, expected):
        """Empty, short and system messages are skipped."""
        assert should_store_message(ChatMessage(role=role, content=content)) is expected


class TestFormatMemoriesAsContext:
    """Test prompt context formatting."""

    def test_empty(self):
        """No results, no context."""
        assert format_memories_as_context([]) == ""

    def test_format(self):
        """Memories are numbered and framed by header and footer."""
        timestamp = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        local = timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        results = [
            MemorySearchResult(
                entry=MemoryEntry(content="I like green tea", metadata=MemoryMetadata(timestamp=timestamp)),
                similarity=0.912,
            ),
            MemorySearchResult(
                entry=MemoryEntry(content="Tea or coffee?", metadata=MemoryMetadata(timestamp=timestamp)),
                similarity=0.75,
            ),
        ]

        expected = (
            "\n\n--- Relevant Memories ---\n"
            f"[Memory 1] ({local}, similarity: 0.91)\nI like green tea"
            "\n\n"
            f"[Memory 2] ({local}, similarity: 0.75)\nTea or coffee?"
            "\n--- End of Memories ---\n\n"
        )
        assert format_memories_as_context(results) == expected


class TestChatHooks:
    """Test hook registration and dispatch."""

    @pytest.mark.asyncio
    async def test_dispatch(self):
        """Handlers receive the message and session."""
        hooks = ChatHooks()
        received = []

        async def handler(message, session_id):
            received.append((message, session_id))

        hooks.on_after_send(handler)
        await hooks.emit_after_send("hello", "s1")
        await hooks.emit_assistant_response_end("ignored", "s1")

        assert received == [("hello", "s1")]
        assert hooks.handler_count() == 1

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self, caplog):
        """One failing handler does not stop the others."""
        hooks = ChatHooks()
        received = []

        async def broken(message, session_id):
            raise RuntimeError("boom")

        async def working(message, session_id):
            received.append(message)

        hooks.on_assistant_response_end(broken)
        hooks.on_assistant_response_end(working)
        await hooks.emit_assistant_response_end("reply")

        assert received == ["reply"]
        assert "boom" in caplog.text


class TestMemoryIntegration:
    """Test automatic storage and recall."""

    def test_no_hooks_while_disabled(self, unconfigured_store):
        """Hooks are not registered while memory is disabled."""
        hooks = ChatHooks()
        integration = MemoryIntegration(unconfigured_store, hooks)

        assert integration.hooks_registered is False
        assert hooks.handler_count() == 0

    def test_hooks_registered_once(self, unconfigured_store):
        """Enabling registers the hooks exactly once."""
        hooks = ChatHooks()
        integration = MemoryIntegration(unconfigured_store, hooks)

        unconfigured_store.memory_enabled = True
        assert integration.ensure_hooks() is True
        integration.ensure_hooks()
        integration.setup_automatic_memory_storage()

        assert hooks.handler_count() == 2

    @pytest.mark.asyncio
    async def test_user_message_hook(self, store):
        """Sent user messages are stored with lifecycle importance."""
        hooks = ChatHooks()
        MemoryIntegration(store, hooks)

        await hooks.emit_after_send("I like green tea", "s1")

        entry = store.memories[0]
        assert entry.content == "I like green tea"
        assert entry.metadata.importance == 0.6
        assert entry.metadata.tags == ["user"]
        assert entry.metadata.source == "chat"
        assert entry.session_id == "s1"
        assert entry.embedding == [1.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_assistant_response_hook(self, store):
        """Assistant responses are stored with lifecycle importance."""
        hooks = ChatHooks()
        MemoryIntegration(store, hooks)

        await hooks.emit_assistant_response_end("x" * 150, "s1")

        entry = store.memories[0]
        assert entry.metadata.importance == 0.7
        assert entry.metadata.tags == ["assistant"]

    @pytest.mark.asyncio
    async def test_hook_uses_active_session(self, store):
        """The active session fills in when the hook carries none."""
        hooks = ChatHooks()
        MemoryIntegration(store, hooks, active_session=lambda: "current")

        await hooks.emit_after_send("I like green tea")
        await hooks.emit_after_send("My cat is called Miso", "explicit")

        assert [e.session_id for e in store.memories] == ["current", "explicit"]

    @pytest.mark.asyncio
    async def test_hook_ignored_after_disable(self, store):
        """Registered hooks store nothing once memory is disabled."""
        hooks = ChatHooks()
        MemoryIntegration(store, hooks)
        store.memory_enabled = False

        await hooks.emit_after_send("I like green tea", "s1")

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_store_message_as_memory(self, store):
        """Structured messages use the explicit importance heuristic."""
        integration = MemoryIntegration(store, ChatHooks())
        message = ChatMessage(role=MessageRole.USER, content="Tea or coffee?")

        result = await integration.store_message_as_memory(message, "s1")

        assert result.stored
        assert result.entry.metadata.importance == pytest.approx(0.7)
        assert result.entry.metadata.tags == ["user"]
        assert result.entry.session_id == "s1"

    @pytest.mark.asyncio
    async def test_store_message_skipped(self, store, unconfigured_store):
        """Filtered messages and unconfigured stores store nothing."""
        integration = MemoryIntegration(store, ChatHooks())
        system = ChatMessage(role=MessageRole.SYSTEM, content="You are a helpful assistant")
        assert await integration.store_message_as_memory(system, None) is None

        idle = MemoryIntegration(unconfigured_store, ChatHooks())
        message = ChatMessage(role=MessageRole.USER, content="I like green tea")
        assert await idle.store_message_as_memory(message, None) is None

    @pytest.mark.asyncio
    async def test_get_relevant_memories(self, store):
        """Recall uses the default limit and threshold."""
        integration = MemoryIntegration(store, ChatHooks())
        await store.store_memory("I like green tea")
        await store.store_memory("The weather is nice")

        results = await integration.get_relevant_memories("What do I drink?")

        assert [r.entry.content for r in results] == ["I like green tea"]
        assert integration.format_memories_as_context(results).startswith("\n\n--- Relevant Memories ---\n")

    @pytest.mark.asyncio
    async def test_get_relevant_memories_unconfigured(self, unconfigured_store):
        """An unconfigured store recalls nothing."""
        integration = MemoryIntegration(unconfigured_store, ChatHooks())
        assert await integration.get_relevant_memories("What do I drink?") == []
