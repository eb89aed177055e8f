"""Domain models."""
from .cache import CacheEntry
from .chat import ChatAnswer, ChatMessage, ComposedAnswer, LectureContext, TopicResource
from .document import (
    Chunk,
    Citation,
    Document,
    RetrievalResult,
    RetrievalStrategy,
    RetrievedChunk,
    ScoredChunk,
)
from .embedding import EmbeddingBatch, QueryEmbedding
from .formatting import FormatResult, TranscriptFormat

__all__ = [
    "CacheEntry",
    "ChatAnswer",
    "ChatMessage",
    "ComposedAnswer",
    "LectureContext",
    "TopicResource",
    "Chunk",
    "Citation",
    "Document",
    "RetrievalResult",
    "RetrievalStrategy",
    "RetrievedChunk",
    "ScoredChunk",
    "EmbeddingBatch",
    "QueryEmbedding",
    "FormatResult",
    "TranscriptFormat",
]
