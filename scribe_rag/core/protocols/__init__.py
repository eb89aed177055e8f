"""Protocol interfaces for dependency injection."""
from .document_store import DocumentStoreProtocol
from .embedder import EmbedderProtocol, EmbeddingBackendProtocol
from .llm import LLMProtocol
from .vector_store import ChunkStoreProtocol

__all__ = [
    "DocumentStoreProtocol",
    "EmbedderProtocol",
    "EmbeddingBackendProtocol",
    "LLMProtocol",
    "ChunkStoreProtocol",
]
