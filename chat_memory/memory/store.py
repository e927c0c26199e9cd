"""
Memory Store - owns the memory collection and its configuration.

Provides storing, semantic search, recency listing and maintenance of chat
memories. Every change is written through to a key-value store so the
collection survives restarts.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from ..observability.logging import memory_extra
from .embeddings import EmbeddingGateway
from .similarity import rank
from .storage import (
    EMBED_MODEL_KEY,
    EMBED_PROVIDER_KEY,
    ENABLED_KEY,
    ENTRIES_KEY,
    MODEL_KEY,
    PROVIDER_KEY,
    InMemoryKeyValueStore,
    KeyValueStore,
)
from .types import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_THRESHOLD,
    DEFAULT_SOURCE,
    MemoryEntry,
    MemoryMetadata,
    MemorySearchResult,
    MemoryStats,
    SearchOptions,
    StoreResult,
    StoreStatus,
    generate_memory_id,
    utc_now,
)


logger = logging.getLogger(__name__)


class MemoryStore:
    """
    Bounded collection of conversation memories with semantic recall.

    The store is an explicit object owned by the application; build one
    with ``chat_memory.factory.build_memory_store`` or directly:

        store = MemoryStore(gateway, kv_store)
        store.memory_enabled = True
        store.embed_provider_id = "local"
        store.embed_model_id = "hash-128"

        result = await store.store_memory("The user likes tea", tags=["user"])
        matches = await store.search_memories("what does the user drink?",
                                              threshold=0.3)

    Nothing raised inside the store reaches the caller: missing configuration,
    embedding failures and unknown ids are logged and reported through return
    values.

    Store and search suspend once, while the embedding is requested. Calls
    that overlap on the same event loop are not serialized.
    """

    def __init__(
        self,
        gateway: EmbeddingGateway,
        kv_store: Optional[KeyValueStore] = None,
    ):
        """
        Initialize the memory store.

        Args:
            gateway: Embedding gateway used for store and search.
            kv_store: Persistence backend. Defaults to a process-local store.
        """
        self._gateway = gateway
        self._kv = kv_store if kv_store is not None else InMemoryKeyValueStore()
        self._entries: List[MemoryEntry] = []
        self.reload()

    # ========== Configuration ==========

    @property
    def gateway(self) -> EmbeddingGateway:
        """Get the embedding gateway."""
        return self._gateway

    @property
    def kv_store(self) -> KeyValueStore:
        """Get the persistence backend."""
        return self._kv

    @property
    def memory_enabled(self) -> bool:
        return self._enabled

    @memory_enabled.setter
    def memory_enabled(self, value: bool) -> None:
        self._enabled = bool(value)
        self._persist(ENABLED_KEY, self._enabled)

    @property
    def embed_provider_id(self) -> str:
        return self._embed_provider_id

    @embed_provider_id.setter
    def embed_provider_id(self, value: Optional[str]) -> None:
        self._embed_provider_id = value or ""
        self._persist(EMBED_PROVIDER_KEY, self._embed_provider_id)

    @property
    def embed_model_id(self) -> str:
        return self._embed_model_id

    @embed_model_id.setter
    def embed_model_id(self, value: Optional[str]) -> None:
        self._embed_model_id = value or ""
        self._persist(EMBED_MODEL_KEY, self._embed_model_id)

    @property
    def provider_id(self) -> str:
        """Reserved: provider for a future non-embedding memory backend."""
        return self._provider_id

    @provider_id.setter
    def provider_id(self, value: Optional[str]) -> None:
        self._provider_id = value or ""
        self._persist(PROVIDER_KEY, self._provider_id)

    @property
    def model_id(self) -> str:
        """Reserved: model for a future non-embedding memory backend."""
        return self._model_id

    @model_id.setter
    def model_id(self, value: Optional[str]) -> None:
        self._model_id = value or ""
        self._persist(MODEL_KEY, self._model_id)

    @property
    def is_configured(self) -> bool:
        """Enabled, with both an embedding provider and model set."""
        return bool(self._enabled and self._embed_provider_id and self._embed_model_id)

    def configure(
        self,
        enabled: Optional[bool] = None,
        embed_provider_id: Optional[str] = None,
        embed_model_id: Optional[str] = None,
    ) -> None:
        """Set any of the configuration values; None leaves a value unchanged."""
        if enabled is not None:
            self.memory_enabled = enabled
        if embed_provider_id is not None:
            self.embed_provider_id = embed_provider_id
        if embed_model_id is not None:
            self.embed_model_id = embed_model_id

    # ========== Persistence ==========

    def reload(self) -> None:
        """(Re)read configuration and entries from the key-value store."""
        self._enabled = bool(self._kv.get(ENABLED_KEY, False))
        self._embed_provider_id = self._kv.get(EMBED_PROVIDER_KEY, "") or ""
        self._embed_model_id = self._kv.get(EMBED_MODEL_KEY, "") or ""
        self._provider_id = self._kv.get(PROVIDER_KEY, "") or ""
        self._model_id = self._kv.get(MODEL_KEY, "") or ""

        entries = []
        seen_ids = set()
        for raw in self._kv.get(ENTRIES_KEY, []) or []:
            try:
                entry = MemoryEntry.from_dict(raw)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable memory entry: {e}")
                continue
            if entry.id in seen_ids:
                logger.warning(f"Skipping duplicate memory entry: {entry.id}")
                continue
            seen_ids.add(entry.id)
            entries.append(entry)

        self._entries = entries

    def _persist(self, key: str, value: Any) -> None:
        try:
            self._kv.set(key, value)
        except Exception as e:
            logger.error(f"Failed to persist '{key}': {e}")

    def _save_entries(self) -> None:
        try:
            records = [entry.to_dict() for entry in self._entries]
        except Exception as e:
            logger.error(f"Failed to serialize memory entries: {e}")
            return
        self._persist(ENTRIES_KEY, records)

    # ========== Core Memory Operations ==========

    @property
    def memories(self) -> List[MemoryEntry]:
        """Snapshot of the collection in insertion order."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _new_id(self) -> str:
        existing = {entry.id for entry in self._entries}
        memory_id = generate_memory_id()
        while memory_id in existing:
            memory_id = generate_memory_id()
        return memory_id

    async def store_memory(
        self,
        content: str,
        source: Optional[str] = None,
        importance: Optional[float] = None,
        tags: Optional[List[str]] = None,
        session_id: Optional[str] = None,
    ) -> StoreResult:
        """
        Store a new memory.

        The entry is kept even when no embedding can be produced; it then
        takes part in recency listings but never in semantic search.

        Args:
            content: The text to remember
            source: Origin tag, defaults to "chat"
            importance: Importance score (0-1)
            tags: Tags for categorization
            session_id: Conversation partition

        Returns:
            StoreResult describing what happened
        """
        if not self.is_configured:
            logger.warning("Memory system not configured")
            return StoreResult(status=StoreStatus.NOT_CONFIGURED)

        entry = MemoryEntry(
            id=self._new_id(),
            content=content,
            metadata=MemoryMetadata(
                timestamp=utc_now(),
                source=source or DEFAULT_SOURCE,
                importance=importance,
                tags=list(tags) if tags is not None else None,
            ),
            session_id=session_id,
        )

        outcome = await self._gateway.embed(
            self._embed_provider_id,
            self._embed_model_id,
            content,
        )
        entry.embedding = outcome.vector

        self._entries.append(entry)
        self._save_entries()

        extra = memory_extra(memory_id=entry.id, session_id=session_id, embedding=outcome.status.value)
        if outcome.ok:
            logger.debug(f"Stored memory entry: {entry.id}", extra=extra)
            status = StoreStatus.STORED
        else:
            logger.warning(
                f"Stored memory entry {entry.id} without embedding ({outcome.status.value})",
                extra=extra,
            )
            status = StoreStatus.STORED_WITHOUT_EMBEDDING

        return StoreResult(
            status=status,
            entry=entry,
            embedding_status=outcome.status.value,
        )

    async def search_memories(
        self,
        query: Union[str, SearchOptions],
        limit: int = DEFAULT_SEARCH_LIMIT,
        threshold: float = DEFAULT_SEARCH_THRESHOLD,
        session_id: Optional[str] = None,
    ) -> List[MemorySearchResult]:
        """
        Search memories by semantic similarity.

        A query that cannot be embedded matches nothing.

        Args:
            query: Search text, or a complete SearchOptions
            limit: Maximum results
            threshold: Minimum similarity (inclusive)
            session_id: Restrict to one session

        Returns:
            Results ordered by descending similarity
        """
        if isinstance(query, SearchOptions):
            options = query
        else:
            options = SearchOptions(
                query=query,
                limit=limit,
                threshold=threshold,
                session_id=session_id,
            )

        if not self.is_configured or not self._entries:
            return []

        try:
            query_embedding = await self._gateway.embed_vector(
                self._embed_provider_id,
                self._embed_model_id,
                options.query,
            )
            if not query_embedding:
                return []

            candidates = self._filter_by_session(options.session_id)
            return rank(candidates, query_embedding, options.threshold, options.limit)
        except Exception as e:
            logger.error(f"Failed to search memories: {e}")
            return []

    def _filter_by_session(self, session_id: Optional[str]) -> List[MemoryEntry]:
        if not session_id:
            return list(self._entries)
        return [entry for entry in self._entries if entry.session_id == session_id]

    def get_recent_memories(
        self,
        limit: int = 10,
        session_id: Optional[str] = None,
    ) -> List[MemoryEntry]:
        """
        Get the most recent memories, newest first.

        Args:
            limit: Maximum number of entries
            session_id: Restrict to one session
        """
        entries = self._filter_by_session(session_id)
        entries.sort(key=lambda e: e.metadata.timestamp, reverse=True)
        return entries[:max(limit, 0)]

    def get_memory_by_id(self, memory_id: str) -> Optional[MemoryEntry]:
        """Retrieve a specific memory by ID."""
        for entry in self._entries:
            if entry.id == memory_id:
                return entry
        return None

    def delete_memory(self, memory_id: str) -> bool:
        """
        Delete a specific memory.

        Returns:
            True if deleted, False if not found
        """
        for index, entry in enumerate(self._entries):
            if entry.id == memory_id:
                del self._entries[index]
                self._save_entries()
                logger.debug(f"Deleted memory entry: {memory_id}")
                return True
        return False

    def clear_memories(self, session_id: Optional[str] = None) -> int:
        """
        Remove all memories, or only those of one session.

        Returns:
            Number of entries removed
        """
        before = len(self._entries)
        if session_id:
            self._entries = [e for e in self._entries if e.session_id != session_id]
        else:
            self._entries = []

        removed = before - len(self._entries)
        if removed:
            self._save_entries()
            logger.info(
                f"Cleared {removed} memory entries",
                extra=memory_extra(session_id=session_id or None, removed=removed),
            )
        return removed

    def update_memory_metadata(self, memory_id: str, **metadata: Any) -> bool:
        """
        Merge fields into a memory's metadata.

        Args:
            memory_id: The memory ID
            **metadata: Any of timestamp, source, importance, tags

        Returns:
            True if updated, False if not found or the update was rejected
        """
        entry = self.get_memory_by_id(memory_id)
        if entry is None:
            return False

        try:
            entry.metadata.merge(**metadata)
        except (TypeError, ValueError) as e:
            logger.warning(
                f"Invalid metadata update for {memory_id}: {e}",
                extra=memory_extra(memory_id=memory_id),
            )
            return False
        self._save_entries()
        return True

    # ========== Statistics ==========

    def get_stats(self) -> MemoryStats:
        """Get memory usage statistics."""
        stats = MemoryStats(total_entries=len(self._entries))
        if not self._entries:
            return stats

        importances = []
        for entry in self._entries:
            if entry.has_embedding:
                stats.entries_with_embedding += 1
            key = entry.session_id or "(none)"
            stats.entries_by_session[key] = stats.entries_by_session.get(key, 0) + 1
            if entry.metadata.importance is not None:
                importances.append(entry.metadata.importance)

        timestamps = [entry.metadata.timestamp for entry in self._entries]
        stats.oldest_entry = min(timestamps)
        stats.newest_entry = max(timestamps)
        if importances:
            stats.average_importance = sum(importances) / len(importances)

        return stats

    def get_stats_summary(self) -> str:
        """Get a human-readable stats summary."""
        stats = self.get_stats()

        lines = [
            "Memory System Statistics",
            "=" * 40,
            f"Enabled: {'yes' if self._enabled else 'no'}",
            f"Embedding: {self._embed_provider_id or '-'} / {self._embed_model_id or '-'}",
            f"Total entries: {stats.total_entries}",
            f"With embedding: {stats.entries_with_embedding}",
        ]

        if stats.entries_by_session:
            lines.append("")
            lines.append("Entries by session:")
            for session, count in sorted(stats.entries_by_session.items()):
                lines.append(f"  - {session}: {count}")

        lines.append("")
        lines.append(f"Average importance: {stats.average_importance:.2f}")
        if stats.oldest_entry:
            lines.append(f"Oldest entry: {stats.oldest_entry.date()}")
        if stats.newest_entry:
            lines.append(f"Newest entry: {stats.newest_entry.date()}")

        return "\n".join(lines)

    # ========== Import/Export ==========

    def export_memories(self, output_path: str) -> int:
        """
        Export all memories to a JSON file.

        Returns:
            Number of entries exported
        """
        entries = [entry.to_dict() for entry in self._entries]

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump({
                "version": 1,
                "exported_at": utc_now().isoformat(),
                "entries": entries,
            }, f, indent=2, ensure_ascii=False)

        logger.info(f"Exported {len(entries)} memories to {output_path}")
        return len(entries)

    def import_memories(self, input_path: str) -> int:
        """
        Import memories from a JSON export.

        Entries whose id is already present and unreadable records are skipped.

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not a JSON export

        Returns:
            Number of entries imported
        """
        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        records: List[Dict[str, Any]] = data.get("entries", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ValueError("Unrecognized export format")
        existing = {entry.id for entry in self._entries}
        imported = 0

        for record in records:
            try:
                entry = MemoryEntry.from_dict(record)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Failed to import entry: {e}")
                continue
            if entry.id in existing:
                logger.debug(f"Skipping existing memory entry: {entry.id}")
                continue
            existing.add(entry.id)
            self._entries.append(entry)
            imported += 1

        if imported:
            self._save_entries()

        logger.info(f"Imported {imported} memories from {input_path}")
        return imported

    def close(self) -> None:
        """Release the persistence backend."""
        self._kv.close()
