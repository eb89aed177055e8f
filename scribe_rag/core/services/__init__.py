"""Core business services."""
from .answer_composer import AnswerComposer
from .chat_service import ChatService
from .embedding_service import FallbackEmbedder
from .format_service import TranscriptFormatter
from .ingest_service import IngestService
from .response_cache import ResponseCache
from .retrieval_service import RetrievalState, Retriever

__all__ = [
    "AnswerComposer",
    "ChatService",
    "FallbackEmbedder",
    "TranscriptFormatter",
    "IngestService",
    "ResponseCache",
    "RetrievalState",
    "Retriever",
]
