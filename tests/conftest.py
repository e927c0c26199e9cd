"""
Pytest configuration and shared fixtures.
"""

import pytest

from chat_memory.errors import EmbeddingError
from chat_memory.memory.embeddings import (
    EmbeddingData,
    EmbeddingGateway,
    EmbeddingModel,
    EmbeddingProvider,
    EmbeddingProviderRegistry,
    EmbeddingResponse,
)
from chat_memory.memory.storage import InMemoryKeyValueStore
from chat_memory.memory.store import MemoryStore


class FakeEmbeddingModel(EmbeddingModel):
    """Returns vectors from a fixed text -> vector table."""

    def __init__(self, provider, model_id):
        super().__init__(model_id)
        self._provider = provider

    async def generate(self, text):
        self._provider.calls.append((self.model_id, text))
        vector = self._provider.vectors.get(text)
        if vector is None:
            return EmbeddingResponse(data=[], model=self.model_id)
        return EmbeddingResponse(data=[EmbeddingData(embedding=list(vector))], model=self.model_id)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Provider backed by a lookup table. Model "no-embed" has no capability."""

    provider_id = "fake"

    def __init__(self, vectors=None):
        self.vectors = dict(vectors or {})
        self.calls = []

    def embed(self, model_id):
        if model_id == "no-embed":
            return None
        return FakeEmbeddingModel(self, model_id)


class FailingEmbeddingModel(EmbeddingModel):
    async def generate(self, text):
        raise EmbeddingError("provider is down")


class FailingEmbeddingProvider(EmbeddingProvider):
    """Provider whose every generation raises."""

    provider_id = "failing"

    def embed(self, model_id):
        return FailingEmbeddingModel(model_id)


@pytest.fixture
def vectors():
    """Text -> vector table used by the fake provider."""
    return {
        "I like green tea": [1.0, 0.0, 0.0],
        "My cat is called Miso": [0.0, 1.0, 0.0],
        "Tea or coffee?": [0.9, 0.1, 0.0],
        "Pets at home": [0.1, 0.95, 0.0],
        "The weather is nice": [0.0, 0.0, 1.0],
        "What do I drink?": [1.0, 0.0, 0.0],
    }


@pytest.fixture
def fake_provider(vectors):
    """Fake embedding provider."""
    return FakeEmbeddingProvider(vectors)


@pytest.fixture
def registry(fake_provider):
    """Registry holding the fake and failing providers."""
    registry = EmbeddingProviderRegistry()
    registry.register("fake", fake_provider)
    registry.register("failing", FailingEmbeddingProvider())
    return registry


@pytest.fixture
def gateway(registry):
    """Embedding gateway over the test registry."""
    return EmbeddingGateway(registry)


@pytest.fixture
def kv_store():
    """Process-local key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def unconfigured_store(gateway):
    """Memory store with default (disabled) configuration and its own backend."""
    return MemoryStore(gateway, InMemoryKeyValueStore())


@pytest.fixture
def store(gateway, kv_store):
    """Memory store enabled with the fake provider."""
    store = MemoryStore(gateway, kv_store)
    store.configure(enabled=True, embed_provider_id="fake", embed_model_id="test-model")
    return store
