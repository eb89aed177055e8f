"""Response cache models."""
from dataclasses import dataclass, field

from .document import Citation


@dataclass
class CacheEntry:
    """Previously computed answer and the sources used for it."""
    response: str
    sources: list[Citation] = field(default_factory=list)
    created_at: float = 0.0
    degraded: bool = False
    low_confidence: bool = False
