"""
Embedding provider contract and gateway.

Providers expose a generation capability per model id. The gateway resolves
the configured provider on every call, asks it for that capability and turns
whatever happens into an ``EmbeddingOutcome``; it never raises.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from ..errors import EmbeddingError


logger = logging.getLogger(__name__)


@dataclass
class EmbeddingData:
    """A single embedding vector in a provider response."""
    embedding: List[float]
    index: int = 0


@dataclass
class EmbeddingResponse:
    """Response of an embedding model for one input."""
    data: List[EmbeddingData] = field(default_factory=list)
    model: Optional[str] = None


class EmbeddingModel(ABC):
    """
    Generation capability for one embedding model.

    Obtained from ``EmbeddingProvider.embed(model_id)``.
    """

    def __init__(self, model_id: str):
        self.model_id = model_id

    @abstractmethod
    async def generate(self, text: str) -> EmbeddingResponse:
        """
        Embed a piece of text.

        Args:
            text: The text to embed

        Returns:
            Response holding at least one embedding on success

        Raises:
            EmbeddingError: If the provider cannot produce a vector
        """
        pass


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    #: Identifier the provider is registered under
    provider_id: str = ""

    @abstractmethod
    def embed(self, model_id: str) -> Optional[EmbeddingModel]:
        """
        Get the generation capability for a model.

        Args:
            model_id: Model identifier understood by the provider

        Returns:
            An embedding model, or None if the provider cannot embed
            with that model
        """
        pass


ProviderFactory = Callable[[], EmbeddingProvider]


class EmbeddingProviderRegistry:
    """
    Registry mapping provider ids to provider instances or factories.

    Factories are invoked lazily on first lookup; the created provider is
    kept for later lookups.
    """

    def __init__(self):
        self._factories: Dict[str, ProviderFactory] = {}
        self._instances: Dict[str, EmbeddingProvider] = {}

    def register(
        self,
        provider_id: str,
        provider: Union[EmbeddingProvider, ProviderFactory],
    ) -> None:
        """
        Register a provider instance or a zero-argument factory.

        Args:
            provider_id: Provider name
            provider: Provider instance or factory creating one
        """
        key = provider_id.lower()
        self._instances.pop(key, None)
        self._factories.pop(key, None)

        if isinstance(provider, EmbeddingProvider):
            self._instances[key] = provider
        elif callable(provider):
            self._factories[key] = provider
        else:
            raise ValueError("Provider must be an EmbeddingProvider or a factory")

    def unregister(self, provider_id: str) -> None:
        """Remove a provider."""
        key = provider_id.lower()
        self._instances.pop(key, None)
        self._factories.pop(key, None)

    def get(self, provider_id: str) -> Optional[EmbeddingProvider]:
        """
        Look up a provider.

        Returns:
            The provider, or None if nothing is registered under the id
        """
        key = provider_id.lower()
        if key in self._instances:
            return self._instances[key]

        factory = self._factories.get(key)
        if factory is None:
            return None

        provider = factory()
        self._instances[key] = provider
        return provider

    def list_providers(self) -> List[str]:
        """List registered provider ids."""
        return sorted(set(self._factories) | set(self._instances))


class EmbeddingStatus(str, Enum):
    """How an embedding attempt ended."""
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    PROVIDER_NOT_FOUND = "provider_not_found"
    CAPABILITY_MISSING = "capability_missing"
    EMPTY_RESPONSE = "empty_response"
    PROVIDER_ERROR = "provider_error"


@dataclass
class EmbeddingOutcome:
    """Result of an embedding attempt through the gateway."""
    status: EmbeddingStatus
    vector: Optional[List[float]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Whether a vector was produced."""
        return self.status == EmbeddingStatus.OK


class EmbeddingGateway:
    """
    Turns text into vectors through the configured provider, failing softly.

    Example:
        gateway = EmbeddingGateway(registry)
        vector = await gateway.embed_vector("local", "hash-128", "hello")
    """

    def __init__(self, registry: EmbeddingProviderRegistry):
        self._registry = registry

    @property
    def registry(self) -> EmbeddingProviderRegistry:
        """Get the provider registry."""
        return self._registry

    async def embed(
        self,
        provider_id: str,
        model_id: str,
        text: str,
    ) -> EmbeddingOutcome:
        """
        Embed text with the given provider and model.

        Returns:
            Outcome with the vector on success, or the failure status
        """
        if not provider_id or not model_id:
            return EmbeddingOutcome(EmbeddingStatus.NOT_CONFIGURED)

        provider = self._registry.get(provider_id)
        if provider is None:
            logger.error(f"Failed to generate embedding: unknown provider '{provider_id}'")
            return EmbeddingOutcome(EmbeddingStatus.PROVIDER_NOT_FOUND)

        try:
            model = provider.embed(model_id)
            if model is None:
                logger.error(
                    f"Failed to generate embedding: provider '{provider_id}' "
                    f"cannot embed with model '{model_id}'"
                )
                return EmbeddingOutcome(EmbeddingStatus.CAPABILITY_MISSING)

            response = await model.generate(text)
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            return EmbeddingOutcome(EmbeddingStatus.PROVIDER_ERROR, error=str(e))

        if response is None or not response.data or not response.data[0].embedding:
            logger.error(
                f"Failed to generate embedding: empty response from '{provider_id}'"
            )
            return EmbeddingOutcome(EmbeddingStatus.EMPTY_RESPONSE)

        try:
            vector = [float(x) for x in response.data[0].embedding]
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to generate embedding: malformed vector ({e})")
            return EmbeddingOutcome(EmbeddingStatus.EMPTY_RESPONSE, error=str(e))

        return EmbeddingOutcome(EmbeddingStatus.OK, vector=vector)

    async def embed_vector(
        self,
        provider_id: str,
        model_id: str,
        text: str,
    ) -> Optional[List[float]]:
        """Embed text and return only the vector (None on any failure)."""
        outcome = await self.embed(provider_id, model_id, text)
        return outcome.vector


__all__ = [
    "EmbeddingData",
    "EmbeddingError",
    "EmbeddingGateway",
    "EmbeddingModel",
    "EmbeddingOutcome",
    "EmbeddingProvider",
    "EmbeddingProviderRegistry",
    "EmbeddingResponse",
    "EmbeddingStatus",
]
