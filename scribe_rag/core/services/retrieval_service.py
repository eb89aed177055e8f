"""Retrieval service - vector search with a degradation ladder."""

import asyncio
import logging
from enum import Enum

from ..exceptions import (
    ConfigurationError,
    DataIntegrityError,
    IndexUnavailableError,
    InvalidQueryError,
    TransientProviderError,
)
from ..models.document import (
    Citation,
    RetrievalResult,
    RetrievalStrategy,
    RetrievedChunk,
    ScoredChunk,
)
from ..protocols.document_store import DocumentStoreProtocol
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import ChunkStoreProtocol

logger = logging.getLogger(__name__)


class RetrievalState(Enum):
    """Per-request states, logged as the request moves through them."""
    EMBEDDING = "embedding"
    SEARCHING = "searching"
    SUCCESS = "success"
    DEGRADED_TEXT_SEARCH = "degraded_text_search"
    DEGRADED_RANDOM_SAMPLE = "degraded_random_sample"
    NO_CONTEXT = "no_context"
    RESOLVING_DOCUMENTS = "resolving_documents"
    DONE = "done"


class Retriever:
    """Embeds the query, searches chunks and resolves their documents.

    Ladder: vector search, then keyword search, then a random sample (if
    allowed). Each rung is bounded by search_timeout. Only bad arguments,
    data integrity problems and document lookup failures escape as exceptions.
    """

    def __init__(
        self,
        embedder: EmbedderProtocol,
        chunk_store: ChunkStoreProtocol,
        document_store: DocumentStoreProtocol,
        top_k: int = 5,
        search_timeout: float = 5.0,
        allow_random_context: bool = True,
    ):
        """Initialize retriever.

        Args:
            embedder: Embedding service (never raises).
            chunk_store: Chunk store.
            document_store: Parent document store.
            top_k: Default number of chunks.
            search_timeout: Seconds allowed per store call.
            allow_random_context: Fall back to random chunks when nothing
                matches. Answers built on them are low confidence.
        """
        if top_k < 1:
            raise InvalidQueryError("top_k must be at least 1", {"top_k": top_k})
        self._embedder = embedder
        self._chunk_store = chunk_store
        self._document_store = document_store
        self._top_k = top_k
        self._search_timeout = search_timeout
        self._allow_random_context = allow_random_context

    async def retrieve(self, query: str, limit: int | None = None) -> RetrievalResult:
        """Retrieve context for a query.

        Args:
            query: User query.
            limit: Override number of chunks, at least 1.

        Returns:
            Retrieval result with chunks, citations and degradation flags.

        Raises:
            InvalidQueryError: limit is below 1.
            DataIntegrityError: A chunk points to a missing document.
            TransientProviderError: Documents could not be looked up.
        """
        if limit is None:
            limit = self._top_k
        if limit < 1:
            raise InvalidQueryError("limit must be at least 1", {"limit": limit})

        self._enter(RetrievalState.EMBEDDING, query)
        embedding = await self._embedder.embed(query)

        self._enter(RetrievalState.SEARCHING, query)
        scored, reason = await self._vector_search(embedding.vector, limit)

        if scored:
            strategy = RetrievalStrategy.SUCCESS
            if embedding.is_fallback:
                reason = "embedding_fallback"
            else:
                reason = None
        else:
            self._enter(RetrievalState.DEGRADED_TEXT_SEARCH, query)
            scored, text_reason = await self._text_search(query, limit)
            strategy = RetrievalStrategy.DEGRADED_TEXT_SEARCH

            if not scored:
                reason = text_reason
                if self._allow_random_context:
                    self._enter(RetrievalState.DEGRADED_RANDOM_SAMPLE, query)
                    scored = await self._random_sample(limit)
                    strategy = RetrievalStrategy.DEGRADED_RANDOM_SAMPLE

            if not scored:
                self._enter(RetrievalState.NO_CONTEXT, query)
                strategy = RetrievalStrategy.NO_CONTEXT
                reason = reason or "no_chunks"

        self._enter(RetrievalState.RESOLVING_DOCUMENTS, query)
        scored = scored[:limit]
        citations = await self._resolve_documents(scored)

        result = RetrievalResult(
            chunks=[
                RetrievedChunk(
                    content=s.chunk.content,
                    distance=s.distance,
                    document_id=s.chunk.document_id,
                    chunk_index=s.chunk.chunk_index,
                )
                for s in scored
            ],
            strategy=strategy,
            citations=citations,
            degraded=strategy is not RetrievalStrategy.SUCCESS or reason is not None,
            degradation_reason=reason,
        )

        self._enter(RetrievalState.DONE, query)
        logger.info(
            f"Retrieval: {len(result.chunks)} chunks, {len(citations)} sources, "
            f"strategy={strategy.value}"
            + (f", reason={reason}" if reason else "")
        )
        return result

    async def _vector_search(
        self, vector: list[float], limit: int
    ) -> tuple[list[ScoredChunk], str]:
        """Run vector search. Returns ([], reason) when it cannot be used."""
        try:
            results = await asyncio.wait_for(
                self._chunk_store.search(vector, limit), timeout=self._search_timeout
            )
        except IndexUnavailableError as e:
            logger.warning(f"Vector index unavailable: {e}")
            return [], "index_unavailable"
        except ConfigurationError as e:
            logger.error(f"Vector search rejected: {e}")
            return [], "vector_search_failed"
        except asyncio.TimeoutError:
            logger.warning(f"Vector search timed out after {self._search_timeout}s")
            return [], "vector_search_timeout"
        except TransientProviderError as e:
            logger.warning(f"Vector search failed: {e}")
            return [], "vector_search_failed"

        if not results:
            return [], "vector_search_empty"
        return results, ""

    async def _text_search(
        self, query: str, limit: int
    ) -> tuple[list[ScoredChunk], str]:
        try:
            results = await asyncio.wait_for(
                self._chunk_store.text_search(query, limit),
                timeout=self._search_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Text search timed out after {self._search_timeout}s")
            return [], "text_search_timeout"
        except (ConfigurationError, TransientProviderError) as e:
            logger.warning(f"Text search failed: {e}")
            return [], "text_search_failed"

        if not results:
            return [], "text_search_empty"
        return results, ""

    async def _random_sample(self, limit: int) -> list[ScoredChunk]:
        try:
            return await asyncio.wait_for(
                self._chunk_store.random_sample(limit), timeout=self._search_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Random sample timed out after {self._search_timeout}s")
        except (ConfigurationError, TransientProviderError) as e:
            logger.warning(f"Random sample failed: {e}")
        return []

    async def _resolve_documents(self, scored: list[ScoredChunk]) -> list[Citation]:
        """Look up parent documents, deduplicated in first-seen order."""
        document_ids: list[str] = []
        seen = set()
        for s in scored:
            if s.chunk.document_id not in seen:
                seen.add(s.chunk.document_id)
                document_ids.append(s.chunk.document_id)

        if not document_ids:
            return []

        try:
            documents = await asyncio.wait_for(
                self._document_store.get_many(document_ids),
                timeout=self._search_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransientProviderError(
                "Document lookup timed out", {"document_ids": document_ids}
            ) from e

        missing = [d for d in document_ids if d not in documents]
        if missing:
            raise DataIntegrityError(
                "Chunks reference missing documents", {"document_ids": missing}
            )

        return [Citation.from_document(documents[d]) for d in document_ids]

    def _enter(self, state: RetrievalState, query: str) -> None:
        logger.debug(f"[retriever] {state.value} for '{query[:50]}'")
