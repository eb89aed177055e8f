"""Document domain models."""
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class Document:
    """Reference article that chunks are cut from."""
    id: str
    title: str
    text: str
    source: str
    url: Optional[str] = None
    author: Optional[str] = None
    published_date: Optional[datetime] = None

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()


@dataclass
class Chunk:
    """Window of a document's text plus its embedding."""
    document_id: str
    chunk_index: int
    content: str
    embedding: Optional[list[float]] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScoredChunk:
    """Chunk returned by a store lookup. Smaller distance is closer."""
    chunk: Chunk
    distance: Optional[float] = None


@dataclass(frozen=True)
class Citation:
    """Source metadata shown next to an answer."""
    document_id: str
    title: str
    source: str
    url: Optional[str] = None
    author: Optional[str] = None
    published_date: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Document) -> "Citation":
        return cls(
            document_id=document.id,
            title=document.title,
            source=document.source,
            url=document.url,
            author=document.author,
            published_date=document.published_date,
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "source": self.source,
            "url": self.url,
            "author": self.author,
            "publishedDate": (
                self.published_date.isoformat() if self.published_date else None
            ),
        }


class RetrievalStrategy(Enum):
    """Terminal state reached by the retriever."""
    SUCCESS = "success"
    DEGRADED_TEXT_SEARCH = "degraded_text_search"
    DEGRADED_RANDOM_SAMPLE = "degraded_random_sample"
    NO_CONTEXT = "no_context"


@dataclass
class RetrievedChunk:
    """Chunk as handed to the answer composer."""
    content: str
    distance: Optional[float]
    document_id: str
    chunk_index: int


@dataclass
class RetrievalResult:
    """Retriever output for one query."""
    chunks: list[RetrievedChunk]
    strategy: RetrievalStrategy
    citations: list[Citation] = field(default_factory=list)
    degraded: bool = False
    degradation_reason: Optional[str] = None

    @property
    def low_confidence(self) -> bool:
        """Context was sampled at random rather than matched to the query."""
        return self.strategy is RetrievalStrategy.DEGRADED_RANDOM_SAMPLE

    @property
    def has_context(self) -> bool:
        return bool(self.chunks)

    def to_dict(self) -> dict:
        data = {
            "chunks": [
                {
                    "content": c.content,
                    "distance": c.distance,
                    "article_id": c.document_id,
                }
                for c in self.chunks
            ],
            "degraded": self.degraded,
        }
        if self.degradation_reason:
            data["degradation_reason"] = self.degradation_reason
        return data
