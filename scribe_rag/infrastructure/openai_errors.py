import openai

from scribe_rag.core.exceptions import (
    ConfigurationError,
    ScribeRagError,
    TransientProviderError,
)

_CONFIGURATION_STATUSES = {400, 401, 403, 404, 422}


def map_openai_error(
    error: Exception,
    provider: str,
    transient_cls: type[TransientProviderError] = TransientProviderError,
) -> ScribeRagError:
    """Translate an openai SDK error into the pipeline's taxonomy.

    Args:
        error: Exception raised by the SDK.
        provider: Backend name for the error details.
        transient_cls: Class used for retryable failures.

    Returns:
        ConfigurationError for credential / model problems, transient_cls
        for everything else.
    """
    details = {"provider": provider}

    if isinstance(error, openai.APIStatusError):
        details["status_code"] = error.status_code
        if error.status_code in _CONFIGURATION_STATUSES:
            return ConfigurationError(f"{provider} rejected the request: {error}", details)
        return transient_cls(f"{provider} returned an error: {error}", details)

    if isinstance(error, openai.APITimeoutError):
        return transient_cls(f"{provider} timed out", details)

    if isinstance(error, openai.APIConnectionError):
        return transient_cls(f"{provider} unreachable: {error}", details)

    return transient_cls(f"{provider} failed: {error}", details)
