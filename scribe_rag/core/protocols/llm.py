"""LLM protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for completion client."""

    async def complete(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return a single text completion.

        Args:
            messages: Chat messages ({"role", "content"}).
            model: Override the configured model.
            temperature: Override sampling temperature.
            max_tokens: Override response token limit.

        Returns:
            Completion text.

        Raises:
            CompositionError: Provider failed or returned nothing.
        """
        ...
