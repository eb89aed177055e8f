"""Chat domain models."""
from dataclasses import dataclass, field

from .document import Citation


@dataclass
class ChatMessage:
    """Chat message."""
    role: str  # "user" | "assistant" | "system"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class ComposedAnswer:
    """Answer composer output. ok is False when the text is an apology."""
    text: str
    ok: bool = True


@dataclass
class ChatAnswer:
    """Chat service response."""
    response: str
    sources: list[Citation] = field(default_factory=list)
    from_cache: bool = False
    degraded: bool = False
    low_confidence: bool = False
    retryable: bool = False

    def to_dict(self) -> dict:
        return {
            "response": self.response,
            "sources": [s.to_dict() for s in self.sources],
            "fromCache": self.from_cache,
            "degraded": self.degraded,
            "lowConfidence": self.low_confidence,
        }


@dataclass
class TopicResource:
    """Supplementary material attached to a lecture topic."""
    topic: str
    description: str = ""
    videos: list[str] = field(default_factory=list)
    articles: list[str] = field(default_factory=list)


@dataclass
class LectureContext:
    """Summary of a recorded lecture used to ground follow-up questions."""
    summary: str
    topics: list[str] = field(default_factory=list)
    topic_resources: list[TopicResource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "LectureContext":
        """Build from the lecture summary payload (camelCase keys)."""
        return cls(
            summary=data.get("summary", ""),
            topics=list(data.get("topics", [])),
            topic_resources=[
                TopicResource(
                    topic=r.get("topic", ""),
                    description=r.get("description", ""),
                    videos=list(r.get("videos", [])),
                    articles=list(r.get("articles", [])),
                )
                for r in data.get("topicResources", [])
            ],
        )
