import asyncio
import logging
from functools import cached_property

from sentence_transformers import SentenceTransformer

from scribe_rag.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedding backend. Encodes in a worker thread."""

    name = "local"

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self._model_name = model_name

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        try:
            return SentenceTransformer(self._model_name)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot load embedding model {self._model_name}: {e}",
                {"provider": self.name},
            ) from e

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return await asyncio.to_thread(self._encode, texts)

    def _encode(self, texts: list[str]) -> list[list[float]]:
        embeddings = self.model.encode(
            texts, convert_to_numpy=True, normalize_embeddings=True
        )
        return embeddings.tolist()
