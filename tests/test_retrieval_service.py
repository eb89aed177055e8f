import asyncio

import pytest

from scribe_rag.core.exceptions import (
    ConfigurationError,
    DataIntegrityError,
    IndexUnavailableError,
    InvalidQueryError,
    TransientProviderError,
)
from scribe_rag.core.models.document import RetrievalStrategy
from scribe_rag.core.services.embedding_service import FallbackEmbedder
from scribe_rag.core.services.retrieval_service import Retriever

from tests.fakes import FakeBackend, InMemoryChunkStore, InMemoryDocumentStore, unavailable


@pytest.mark.asyncio
async def test_vector_search_success(retriever):
    result = await retriever.retrieve("how do inhalers work")

    assert result.strategy is RetrievalStrategy.SUCCESS
    assert result.degraded is False
    assert result.degradation_reason is None
    assert [c.document_id for c in result.chunks][:2] == ["doc-a", "doc-a"]
    distances = [c.distance for c in result.chunks]
    assert distances == sorted(distances)


@pytest.mark.asyncio
async def test_citations_deduplicated_in_first_seen_order(retriever):
    result = await retriever.retrieve("how do inhalers work")

    assert [c.document_id for c in result.citations] == ["doc-a", "doc-b"]
    assert result.citations[0].title == "Asthma"
    assert result.citations[0].author == "Dr A"


@pytest.mark.asyncio
async def test_limit_is_respected(retriever):
    result = await retriever.retrieve("how do inhalers work", limit=1)

    assert len(result.chunks) == 1
    assert len(result.citations) == 1


@pytest.mark.parametrize("limit", [0, -1])
@pytest.mark.asyncio
async def test_limit_below_one_is_rejected(retriever, limit):
    with pytest.raises(InvalidQueryError):
        await retriever.retrieve("how do inhalers work", limit=limit)


def test_top_k_below_one_is_rejected(embedder, chunk_store, document_store):
    with pytest.raises(InvalidQueryError):
        Retriever(embedder, chunk_store, document_store, top_k=0)


@pytest.mark.asyncio
async def test_zero_vector_falls_back_to_text_search(chunk_store, document_store):
    embedder = FallbackEmbedder([FakeBackend("openai", error=unavailable())], dimension=4)
    retriever = Retriever(embedder, chunk_store, document_store, top_k=3)

    result = await retriever.retrieve("insulin dosing")

    assert result.strategy is RetrievalStrategy.DEGRADED_TEXT_SEARCH
    assert result.degraded is True
    assert result.chunks[0].document_id == "doc-b"
    assert result.low_confidence is False


@pytest.mark.asyncio
async def test_index_unavailable_falls_back_to_text_search(retriever, chunk_store):
    chunk_store.search_error = IndexUnavailableError("no vector extension")

    result = await retriever.retrieve("asthma triggers")

    assert result.strategy is RetrievalStrategy.DEGRADED_TEXT_SEARCH
    assert result.degradation_reason == "index_unavailable"
    assert {c.document_id for c in result.chunks} == {"doc-a"}


@pytest.mark.asyncio
async def test_vector_search_timeout_falls_back(retriever, chunk_store):
    chunk_store.search_delay = 1.0

    result = await retriever.retrieve("asthma")

    assert result.strategy is RetrievalStrategy.DEGRADED_TEXT_SEARCH
    assert result.degradation_reason == "vector_search_timeout"


@pytest.mark.asyncio
async def test_random_sample_when_nothing_matches(retriever, chunk_store):
    chunk_store.search_error = TransientProviderError("connection reset")

    result = await retriever.retrieve("completely unrelated words")

    assert result.strategy is RetrievalStrategy.DEGRADED_RANDOM_SAMPLE
    assert result.low_confidence is True
    assert result.degraded is True
    assert result.degradation_reason == "text_search_empty"
    assert 0 < len(result.chunks) <= 3
    assert all(c.distance is None for c in result.chunks)


@pytest.mark.asyncio
async def test_random_sample_can_be_disabled(embedder, chunk_store, document_store):
    chunk_store.search_error = IndexUnavailableError("no vector extension")
    retriever = Retriever(
        embedder, chunk_store, document_store, allow_random_context=False
    )

    result = await retriever.retrieve("completely unrelated words")

    assert result.strategy is RetrievalStrategy.NO_CONTEXT
    assert result.chunks == []
    assert result.citations == []
    assert result.has_context is False


@pytest.mark.asyncio
async def test_empty_store_is_no_context(embedder):
    retriever = Retriever(embedder, InMemoryChunkStore(), InMemoryDocumentStore())

    result = await retriever.retrieve("how do inhalers work")

    assert result.strategy is RetrievalStrategy.NO_CONTEXT
    assert result.degraded is True
    assert result.degradation_reason == "text_search_empty"


@pytest.mark.asyncio
async def test_missing_parent_document_raises(retriever, document_store):
    del document_store.documents["doc-b"]

    with pytest.raises(DataIntegrityError) as exc_info:
        await retriever.retrieve("how do inhalers work")

    assert exc_info.value.details["document_ids"] == ["doc-b"]


@pytest.mark.asyncio
async def test_document_lookup_timeout_is_transient(retriever, document_store):
    document_store.delay = 1.0

    with pytest.raises(TransientProviderError):
        await retriever.retrieve("how do inhalers work")


@pytest.mark.asyncio
async def test_to_dict_shape(retriever, chunk_store):
    chunk_store.search_error = IndexUnavailableError("no vector extension")

    data = (await retriever.retrieve("asthma")).to_dict()

    assert data["degraded"] is True
    assert data["degradation_reason"] == "index_unavailable"
    assert set(data["chunks"][0]) == {"content", "distance", "article_id"}


@pytest.mark.asyncio
async def test_rejected_vector_query_falls_back_to_text_search(retriever, chunk_store):
    chunk_store.search_error = ConfigurationError("different vector dimensions 3 and 4")

    result = await retriever.retrieve("insulin dosing")

    assert result.strategy is RetrievalStrategy.DEGRADED_TEXT_SEARCH
    assert result.degradation_reason == "vector_search_failed"
    assert result.chunks[0].document_id == "doc-b"
