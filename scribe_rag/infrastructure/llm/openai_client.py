import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from scribe_rag.core.exceptions import CompositionError, ConfigurationError
from scribe_rag.infrastructure.openai_errors import map_openai_error

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Completion client for OpenAI or any OpenAI-compatible API (e.g. Ollama)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gpt-4-turbo",
        max_tokens: int = 1000,
        temperature: float = 0.5,
        timeout: float = 30.0,
    ):
        """Initialize chat client.

        Args:
            api_key: API key. Required unless base_url points at a local server.
            base_url: API URL, None for api.openai.com.
            model: Model name.
            max_tokens: Max response tokens.
            temperature: Sampling temperature.
            timeout: Request timeout in seconds.
        """
        if not api_key and not base_url:
            raise ConfigurationError("OPENAI_API_KEY is not set", {"provider": "openai"})

        self._client = AsyncOpenAI(
            api_key=api_key or "local",
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def complete(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return a single completion.

        Args:
            messages: Chat messages.
            model: Model override.
            temperature: Temperature override.
            max_tokens: Token limit override.

        Returns:
            Completion text.
        """
        model = model or self._model
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens if max_tokens is not None else self._max_tokens,
                temperature=(
                    temperature if temperature is not None else self._temperature
                ),
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, "completion", CompositionError) from e

        if not response.choices or not response.choices[0].message.content:
            raise CompositionError("Empty completion", {"model": model})

        logger.debug(f"Completion from {model}: {len(response.choices[0].message.content)} chars")
        return response.choices[0].message.content
