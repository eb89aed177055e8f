import pytest

from scribe_rag.core.models.document import Chunk, Document
from scribe_rag.core.services.embedding_service import FallbackEmbedder
from scribe_rag.core.services.retrieval_service import Retriever

from tests.fakes import FakeBackend, InMemoryChunkStore, InMemoryDocumentStore

DIMENSION = 4


@pytest.fixture
def documents():
    return [
        Document(id="doc-a", title="Asthma", text="Asthma inhalers and triggers.",
                 source="asthma.md", author="Dr A"),
        Document(id="doc-b", title="Diabetes", text="Insulin dosing and diet.",
                 source="diabetes.md"),
    ]


@pytest.fixture
def chunk_store(documents):
    store = InMemoryChunkStore()
    store.chunks = {
        "doc-a": [
            Chunk("doc-a", 0, "asthma inhaler technique", [1.0, 0.0, 0.0, 0.0]),
            Chunk("doc-a", 1, "asthma triggers such as pollen", [0.9, 0.1, 0.0, 0.0]),
        ],
        "doc-b": [
            Chunk("doc-b", 0, "insulin dosing schedule", [0.0, 1.0, 0.0, 0.0]),
        ],
    }
    return store


@pytest.fixture
def document_store(documents):
    store = InMemoryDocumentStore()
    store.documents = {d.id: d for d in documents}
    return store


@pytest.fixture
def backend():
    return FakeBackend(
        "openai",
        dimension=DIMENSION,
        vectors={"how do inhalers work": [1.0, 0.05, 0.0, 0.0]},
    )


@pytest.fixture
def embedder(backend):
    return FallbackEmbedder([backend], dimension=DIMENSION, timeout=0.5)


@pytest.fixture
def retriever(embedder, chunk_store, document_store):
    return Retriever(
        embedder=embedder,
        chunk_store=chunk_store,
        document_store=document_store,
        top_k=3,
        search_timeout=0.2,
    )
