"""
Chat Memory - semantic recall for chat conversations.

Remembers what was said in a conversation and brings the relevant parts
back when a new message arrives.

Key Features:
- Automatic storage of user and assistant messages via chat hooks
- Embedding-based search with similarity threshold and session filter
- Pluggable embedding providers (offline hashing, OpenAI, Ollama)
- Durable JSON or SQLite storage
- Prompt context formatting for recalled memories
"""

__version__ = "0.1.0"

from .errors import (
    ChatMemoryError,
    EmbeddingError,
    StorageError,
    ConfigError,
)

from .chat import (
    ChatMessage,
    MessageRole,
    ChatHooks,
)

from .memory import (
    MemoryEntry,
    MemoryMetadata,
    MemorySearchResult,
    SearchOptions,
    StoreResult,
    StoreStatus,
    MemoryStore,
    MemoryIntegration,
    EmbeddingGateway,
    EmbeddingProvider,
    EmbeddingProviderRegistry,
    format_memories_as_context,
)

from .config import (
    ChatMemoryConfig,
    load_config,
)

from .factory import (
    build_memory_store,
    build_provider_registry,
)


__all__ = [
    "__version__",
    # Errors
    "ChatMemoryError",
    "EmbeddingError",
    "StorageError",
    "ConfigError",
    # Chat
    "ChatMessage",
    "MessageRole",
    "ChatHooks",
    # Memory
    "MemoryEntry",
    "MemoryMetadata",
    "MemorySearchResult",
    "SearchOptions",
    "StoreResult",
    "StoreStatus",
    "MemoryStore",
    "MemoryIntegration",
    "EmbeddingGateway",
    "EmbeddingProvider",
    "EmbeddingProviderRegistry",
    "format_memories_as_context",
    # Configuration
    "ChatMemoryConfig",
    "load_config",
    "build_memory_store",
    "build_provider_registry",
]
