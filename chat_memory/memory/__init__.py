"""
Memory System for conversation recall.

Stores chat messages as memories, embeds them through a pluggable provider
and retrieves them by meaning.

Key features:
- Explicit MemoryStore with write-through persistence
- Pluggable embedding providers (local hashing, OpenAI, Ollama)
- Cosine-similarity search with threshold, limit and session filter
- JSON, SQLite and in-memory key-value backends
- Chat lifecycle integration and prompt-context formatting
- Export/import functionality
"""

from .types import (
    MemoryMetadata,
    MemoryEntry,
    SearchOptions,
    MemorySearchResult,
    StoreStatus,
    StoreResult,
    MemoryStats,
)

from .storage import (
    KeyValueStore,
    InMemoryKeyValueStore,
    JSONFileKeyValueStore,
    SQLiteKeyValueStore,
)

from .embeddings import (
    EmbeddingModel,
    EmbeddingProvider,
    EmbeddingProviderRegistry,
    EmbeddingGateway,
    EmbeddingOutcome,
    EmbeddingStatus,
)

from .providers import (
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
    OllamaEmbeddingProvider,
)

from .similarity import (
    cosine_similarity,
    rank,
)

from .importance import (
    calculate_importance,
    lifecycle_importance,
)

from .store import (
    MemoryStore,
)

from .integration import (
    MemoryIntegration,
    format_memories_as_context,
    should_store_message,
)


__all__ = [
    # Types
    "MemoryMetadata",
    "MemoryEntry",
    "SearchOptions",
    "MemorySearchResult",
    "StoreStatus",
    "StoreResult",
    "MemoryStats",
    # Storage
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JSONFileKeyValueStore",
    "SQLiteKeyValueStore",
    # Embeddings
    "EmbeddingModel",
    "EmbeddingProvider",
    "EmbeddingProviderRegistry",
    "EmbeddingGateway",
    "EmbeddingOutcome",
    "EmbeddingStatus",
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "OllamaEmbeddingProvider",
    # Scoring
    "cosine_similarity",
    "rank",
    "calculate_importance",
    "lifecycle_importance",
    # Store
    "MemoryStore",
    # Chat integration
    "MemoryIntegration",
    "format_memories_as_context",
    "should_store_message",
]
