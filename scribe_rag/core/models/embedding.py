"""Embedding value types."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class QueryEmbedding:
    """Vector for a single text.

    provider is None and is_fallback is True when every backend failed.
    """
    vector: list[float]
    provider: Optional[str] = None
    is_fallback: bool = False


@dataclass
class EmbeddingBatch:
    """Vectors for an ordered batch. All real or all fallback."""
    vectors: list[list[float]]
    provider: Optional[str] = None
    is_fallback: bool = False
