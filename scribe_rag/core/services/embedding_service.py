"""Embedding service - ordered backend chain with fallback vectors."""

import asyncio
import hashlib
import logging

import numpy as np

from ..exceptions import ConfigurationError, TransientProviderError
from ..models.embedding import EmbeddingBatch, QueryEmbedding
from ..protocols.embedder import EmbeddingBackendProtocol

logger = logging.getLogger(__name__)

FALLBACK_ZERO = "zero"
FALLBACK_RANDOM = "random"


class FallbackEmbedder:
    """Embedder that tries each backend in order and never raises."""

    def __init__(
        self,
        backends: list[EmbeddingBackendProtocol],
        dimension: int = 1536,
        timeout: float = 10.0,
        fallback: str = FALLBACK_ZERO,
    ):
        """Initialize embedder.

        Args:
            backends: Backends in priority order.
            dimension: Required vector length.
            timeout: Seconds allowed per backend call.
            fallback: "zero" for all-zero vectors, "random" for a unit vector
                seeded by the SHA-256 of the text.
        """
        if fallback not in (FALLBACK_ZERO, FALLBACK_RANDOM):
            raise ConfigurationError(
                f"Unknown embedding fallback: {fallback}", {"fallback": fallback}
            )
        self._backends = list(backends)
        self._dimension = dimension
        self._timeout = timeout
        self._fallback = fallback
        self._disabled: set[str] = set()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def active_backends(self) -> list[str]:
        return [b.name for b in self._backends if b.name not in self._disabled]

    async def embed(self, text: str) -> QueryEmbedding:
        batch = await self.embed_batch([text])
        return QueryEmbedding(
            vector=batch.vectors[0],
            provider=batch.provider,
            is_fallback=batch.is_fallback,
        )

    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        if not texts:
            return EmbeddingBatch(vectors=[], provider=None, is_fallback=False)

        for backend in self._backends:
            if backend.name in self._disabled:
                continue
            try:
                vectors = await asyncio.wait_for(
                    backend.embed_texts(texts), timeout=self._timeout
                )
                self._validate(backend.name, texts, vectors)
                return EmbeddingBatch(
                    vectors=[list(map(float, v)) for v in vectors],
                    provider=backend.name,
                    is_fallback=False,
                )
            except ConfigurationError as e:
                self._disabled.add(backend.name)
                logger.error(
                    f"Embedding backend '{backend.name}' disabled: {e}"
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Embedding backend '{backend.name}' timed out "
                    f"after {self._timeout}s"
                )
            except TransientProviderError as e:
                logger.warning(f"Embedding backend '{backend.name}' failed: {e}")
            except Exception as e:
                logger.warning(
                    f"Embedding backend '{backend.name}' raised "
                    f"{type(e).__name__}: {e}"
                )

        logger.warning(
            f"All embedding backends failed, using {self._fallback} "
            f"fallback for {len(texts)} text(s)"
        )
        return EmbeddingBatch(
            vectors=[self.fallback_vector(t) for t in texts],
            provider=None,
            is_fallback=True,
        )

    def fallback_vector(self, text: str) -> list[float]:
        """Deterministic stand-in vector for text."""
        if self._fallback == FALLBACK_ZERO:
            return [0.0] * self._dimension

        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        vector = rng.standard_normal(self._dimension)
        vector /= np.linalg.norm(vector)
        return vector.tolist()

    def _validate(
        self, name: str, texts: list[str], vectors: list[list[float]]
    ) -> None:
        if len(vectors) != len(texts):
            raise TransientProviderError(
                f"Backend '{name}' returned {len(vectors)} vectors for {len(texts)} texts"
            )
        for vector in vectors:
            if len(vector) != self._dimension:
                raise ConfigurationError(
                    f"Backend '{name}' returned dimension {len(vector)}, "
                    f"expected {self._dimension}",
                    {"backend": name},
                )
