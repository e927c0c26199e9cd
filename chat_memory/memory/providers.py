"""
Embedding provider implementations.

- ``local``: deterministic hash-based embeddings, no network or model needed
- ``openai``: OpenAI embeddings API through the ``openai`` SDK
- ``ollama``: a local Ollama server through its HTTP API
"""

import hashlib
import logging
import math
import os
import re
from typing import List, Optional

import httpx

from ..errors import EmbeddingError
from .embeddings import (
    EmbeddingData,
    EmbeddingModel,
    EmbeddingProvider,
    EmbeddingResponse,
)


logger = logging.getLogger(__name__)


class HashingEmbeddingModel(EmbeddingModel):
    """
    Hash-based bag-of-words embedding.

    Each word is hashed into one of ``dimension`` buckets with a hashed sign,
    weighted by term frequency and L2-normalized. Identical texts always get
    identical vectors; texts sharing words get positive similarity.
    """

    def __init__(self, model_id: str, dimension: int):
        super().__init__(model_id)
        self.dimension = dimension

    async def generate(self, text: str) -> EmbeddingResponse:
        return EmbeddingResponse(
            data=[EmbeddingData(embedding=self.embed_text(text))],
            model=self.model_id,
        )

    def embed_text(self, text: str) -> List[float]:
        """Generate the embedding synchronously."""
        vector = [0.0] * self.dimension
        words = self._tokenize(text)
        if not words:
            return vector

        for word in words:
            index = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            sign_hash = int(hashlib.sha256(word.encode()).hexdigest(), 16)
            sign = 1 if sign_hash % 2 == 0 else -1
            vector[index] += sign * (1.0 / len(words))

        return self._normalize(vector)

    def _tokenize(self, text: str) -> List[str]:
        """Lowercase, split on non-alphanumerics and drop words of 2 chars or less."""
        words = re.findall(r"[^\W_]+", text.lower())
        return [w for w in words if len(w) > 2]

    def _normalize(self, vector: List[float]) -> List[float]:
        """L2 normalize a vector."""
        magnitude = math.sqrt(sum(x * x for x in vector))
        if magnitude == 0:
            return vector
        return [x / magnitude for x in vector]


class HashingEmbeddingProvider(EmbeddingProvider):
    """
    Offline embedding provider.

    Model ids of the form ``hash-<dimension>`` select the vector size;
    any other model id uses the default dimension.
    """

    provider_id = "local"
    DEFAULT_DIMENSION = 128

    def __init__(self, dimension: int = DEFAULT_DIMENSION):
        self.dimension = dimension

    def embed(self, model_id: str) -> Optional[EmbeddingModel]:
        dimension = self.dimension
        match = re.fullmatch(r"hash-(\d+)", model_id)
        if match:
            dimension = int(match.group(1))
        if dimension <= 0:
            return None
        return HashingEmbeddingModel(model_id, dimension)


class OpenAIEmbeddingModel(EmbeddingModel):
    """Embedding capability backed by the OpenAI embeddings endpoint."""

    def __init__(self, provider: "OpenAIEmbeddingProvider", model_id: str):
        super().__init__(model_id)
        self._provider = provider

    async def generate(self, text: str) -> EmbeddingResponse:
        client = self._provider._get_client()

        try:
            response = await client.embeddings.create(
                model=self.model_id,
                input=text,
            )
        except Exception as e:
            raise EmbeddingError(f"OpenAI embedding request failed: {e}") from e

        return EmbeddingResponse(
            data=[
                EmbeddingData(embedding=list(item.embedding), index=item.index)
                for item in response.data
            ],
            model=getattr(response, "model", self.model_id),
        )


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI API embedding provider."""

    provider_id = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: float = 30.0,
        client=None,
    ):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: API key (defaults to OPENAI_API_KEY)
            api_base: Optional base URL for OpenAI-compatible servers
            timeout: Request timeout in seconds
            client: Pre-built async client, mainly for testing
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key and client is None:
            logger.warning("No OpenAI API key provided. Set OPENAI_API_KEY environment variable.")

        self.api_base = api_base or "https://api.openai.com/v1"
        self.timeout = timeout
        self._client = client

    def _get_client(self):
        """Get or create the async OpenAI client."""
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise EmbeddingError(
                    "OpenAI package not installed. Install with: pip install openai"
                )
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.api_base,
                timeout=self.timeout,
            )
        return self._client

    def embed(self, model_id: str) -> Optional[EmbeddingModel]:
        return OpenAIEmbeddingModel(self, model_id)


class OllamaEmbeddingModel(EmbeddingModel):
    """Embedding capability backed by Ollama's ``/api/embed`` endpoint."""

    def __init__(self, provider: "OllamaEmbeddingProvider", model_id: str):
        super().__init__(model_id)
        self._provider = provider

    async def generate(self, text: str) -> EmbeddingResponse:
        payload = {"model": self.model_id, "input": text}
        data = await self._provider._post("/api/embed", payload)

        embeddings = data.get("embeddings")
        if embeddings is None and data.get("embedding"):
            # Older servers answer /api/embeddings with a single vector
            embeddings = [data["embedding"]]

        return EmbeddingResponse(
            data=[
                EmbeddingData(embedding=list(vector), index=i)
                for i, vector in enumerate(embeddings or [])
            ],
            model=data.get("model", self.model_id),
        )


class OllamaEmbeddingProvider(EmbeddingProvider):
    """
    Ollama local embedding provider.

    Example:
        provider = OllamaEmbeddingProvider()
        model = provider.embed("nomic-embed-text")
        response = await model.generate("hello")
    """

    provider_id = "ollama"

    def __init__(
        self,
        api_base: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Ollama provider.

        Args:
            api_base: Server URL (defaults to OLLAMA_HOST or localhost)
            timeout: Request timeout in seconds
            client: Shared async HTTP client; one is created per request if omitted
        """
        self.api_base = (
            api_base or os.environ.get("OLLAMA_HOST", "http://localhost:11434")
        ).rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _post(self, endpoint: str, payload: dict) -> dict:
        """POST JSON to the Ollama API and decode the JSON answer."""
        url = f"{self.api_base}{endpoint}"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise EmbeddingError(
                f"Ollama returned HTTP {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.RequestError as e:
            raise EmbeddingError(
                f"Could not connect to Ollama at {self.api_base}. "
                f"Make sure Ollama is running: {e}"
            ) from e
        except ValueError as e:
            raise EmbeddingError(f"Malformed response from Ollama: {e}") from e

    def embed(self, model_id: str) -> Optional[EmbeddingModel]:
        return OllamaEmbeddingModel(self, model_id)
