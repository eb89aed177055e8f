import logging
from typing import Optional

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from scribe_rag.core.exceptions import ConfigurationError
from scribe_rag.infrastructure.openai_errors import map_openai_error

logger = logging.getLogger(__name__)


class OpenAIEmbeddingBackend:
    """Embedding backend for the OpenAI (or Azure OpenAI) embeddings API."""

    def __init__(self, client: AsyncOpenAI, model: str, name: str = "openai"):
        """Initialize backend.

        Args:
            client: Async OpenAI-compatible client.
            model: Embedding model (deployment name on Azure).
            name: Backend name used in logs and provenance.
        """
        self.name = name
        self._client = client
        self._model = model

    @classmethod
    def from_openai(
        cls,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
    ) -> "OpenAIEmbeddingBackend":
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set", {"provider": "openai"})
        client = AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        return cls(client, model, name="openai")

    @classmethod
    def from_azure(
        cls,
        api_key: Optional[str],
        endpoint: Optional[str],
        deployment: Optional[str],
        api_version: str,
        timeout: float = 10.0,
    ) -> "OpenAIEmbeddingBackend":
        if not (api_key and endpoint and deployment):
            raise ConfigurationError(
                "Azure OpenAI configuration is missing", {"provider": "azure"}
            )
        client = AsyncAzureOpenAI(
            api_key=api_key,
            azure_endpoint=endpoint,
            api_version=api_version,
            timeout=timeout,
            max_retries=0,
        )
        return cls(client, deployment, name="azure")

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(
                model=self._model, input=texts
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name) from e

        data = sorted(response.data, key=lambda item: item.index)
        logger.debug(f"{self.name}: embedded {len(data)} text(s) with {self._model}")
        return [item.embedding for item in data]
