"""Exception hierarchy for the retrieval pipeline."""
from typing import Any


class ScribeRagError(Exception):
    """Base exception for scribe_rag."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class TransientProviderError(ScribeRagError):
    """Network, timeout or provider-side failure. Safe to retry later."""
    pass


class ConfigurationError(ScribeRagError):
    """Missing credentials, unknown model or missing index."""
    pass


class IndexUnavailableError(ConfigurationError):
    """Vector search is not available in the chunk store."""
    pass


class DataIntegrityError(ScribeRagError):
    """Chunk and document stores disagree."""
    pass


class CompositionError(TransientProviderError):
    """Completion provider failed to produce an answer."""
    pass


class InvalidChunkingError(ScribeRagError, ValueError):
    """Chunk size / overlap combination cannot make progress."""
    pass


class InvalidQueryError(ScribeRagError, ValueError):
    """Retrieval arguments are out of range."""
    pass
