"""Embedder protocols for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.embedding import EmbeddingBatch, QueryEmbedding


@runtime_checkable
class EmbeddingBackendProtocol(Protocol):
    """A single embedding provider. Raises on failure."""

    name: str

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in order.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per text, same order as input.

        Raises:
            TransientProviderError: Network, timeout or provider-side error.
            ConfigurationError: Credentials or model are not usable.
        """
        ...


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Embedding service used by the pipeline. Never raises."""

    @property
    def dimension(self) -> int:
        """Length of every returned vector."""
        ...

    async def embed(self, text: str) -> QueryEmbedding:
        """Embed a single query string.

        Args:
            text: Query text.

        Returns:
            Real or fallback vector with its provenance.
        """
        ...

    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        """Embed an ordered batch of chunk strings.

        Args:
            texts: Chunk texts.

        Returns:
            Vectors in input order, all real or all fallback.
        """
        ...
