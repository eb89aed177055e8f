"""Chunk store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

from ..models.document import Chunk, Document, ScoredChunk


@runtime_checkable
class ChunkStoreProtocol(Protocol):
    """Protocol for chunk storage with vector search."""

    async def search(
        self, query_vector: list[float], limit: int = 5
    ) -> list[ScoredChunk]:
        """Nearest-neighbour search.

        Args:
            query_vector: Query embedding.
            limit: Maximum number of chunks.

        Returns:
            Chunks ordered by ascending distance.

        Raises:
            IndexUnavailableError: Vector search is not available.
            TransientProviderError: Store could not be reached.
        """
        ...

    async def text_search(self, query: str, limit: int = 5) -> list[ScoredChunk]:
        """Keyword match over chunk content, best match first."""
        ...

    async def random_sample(self, limit: int = 5) -> list[ScoredChunk]:
        """Uniformly random chunks, distance None."""
        ...

    async def upsert_chunks(
        self,
        document_id: str,
        chunks: list[Chunk],
        document: Optional[Document] = None,
    ) -> int:
        """Replace all chunks of a document in one transaction.

        Args:
            document_id: Owning document.
            chunks: New chunk set; indices are reassigned sequentially.
            document: Parent row, written in the same transaction.

        Returns:
            Number of chunks stored.
        """
        ...

    async def delete_chunks(self, document_id: str) -> int:
        """Delete all chunks of a document. Returns the number removed."""
        ...

    async def count_chunks(self, document_id: Optional[str] = None) -> int:
        """Count chunks, optionally for one document."""
        ...

    async def has_fallback_embeddings(self, document_id: str) -> bool:
        """Whether any chunk of the document was stored with a fallback vector."""
        ...
