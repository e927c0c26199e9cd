"""
Factory functions that assemble a memory store from configuration.
"""

import os
from typing import Optional

from .config import ChatMemoryConfig
from .memory.embeddings import EmbeddingGateway, EmbeddingProviderRegistry
from .memory.providers import (
    HashingEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from .memory.storage import (
    InMemoryKeyValueStore,
    JSONFileKeyValueStore,
    KeyValueStore,
    SQLiteKeyValueStore,
)
from .memory.store import MemoryStore


def build_provider_registry(config: Optional[ChatMemoryConfig] = None) -> EmbeddingProviderRegistry:
    """
    Create a registry with the built-in providers.

    Network-backed providers are created lazily on first use.
    """
    config = config or ChatMemoryConfig()
    registry = EmbeddingProviderRegistry()

    registry.register("local", HashingEmbeddingProvider)

    openai_options = config.provider_options("openai")
    registry.register("openai", lambda: OpenAIEmbeddingProvider(
        api_key=openai_options.api_key,
        api_base=openai_options.api_base,
        timeout=openai_options.timeout,
    ))

    ollama_options = config.provider_options("ollama")
    registry.register("ollama", lambda: OllamaEmbeddingProvider(
        api_base=ollama_options.api_base,
        timeout=ollama_options.timeout,
    ))

    return registry


def build_kv_store(config: Optional[ChatMemoryConfig] = None) -> KeyValueStore:
    """Create the persistence backend named by the storage configuration."""
    config = config or ChatMemoryConfig()
    path = os.path.expanduser(config.storage.path) if config.storage.path else None

    if config.storage.backend == "memory":
        return InMemoryKeyValueStore()
    if config.storage.backend == "sqlite":
        return SQLiteKeyValueStore(db_path=path)
    return JSONFileKeyValueStore(path=path)


def build_memory_store(
    config: Optional[ChatMemoryConfig] = None,
    registry: Optional[EmbeddingProviderRegistry] = None,
    kv_store: Optional[KeyValueStore] = None,
) -> MemoryStore:
    """
    Assemble a memory store.

    Persisted settings are loaded first; explicitly configured values
    (not None) then replace them.

    Args:
        config: Configuration, defaults used if omitted
        registry: Provider registry, built-ins used if omitted
        kv_store: Persistence backend, built from config if omitted

    Returns:
        Ready-to-use MemoryStore
    """
    config = config or ChatMemoryConfig()
    gateway = EmbeddingGateway(registry or build_provider_registry(config))
    store = MemoryStore(gateway, kv_store if kv_store is not None else build_kv_store(config))

    store.configure(
        enabled=config.enabled,
        embed_provider_id=config.embed_provider,
        embed_model_id=config.embed_model,
    )
    if config.provider is not None:
        store.provider_id = config.provider
    if config.model is not None:
        store.model_id = config.model

    return store
