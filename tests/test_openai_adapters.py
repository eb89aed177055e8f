from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from scribe_rag.core.exceptions import (
    CompositionError,
    ConfigurationError,
    TransientProviderError,
)
from scribe_rag.infrastructure.embeddings.openai_embedder import OpenAIEmbeddingBackend
from scribe_rag.infrastructure.llm.openai_client import OpenAIChatClient
from scribe_rag.infrastructure.openai_errors import map_openai_error

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def status_error(cls, status: int):
    return cls("rejected", response=httpx.Response(status, request=REQUEST), body=None)


@pytest.mark.parametrize(
    "error,expected",
    [
        (status_error(openai.AuthenticationError, 401), ConfigurationError),
        (status_error(openai.NotFoundError, 404), ConfigurationError),
        (status_error(openai.BadRequestError, 400), ConfigurationError),
        (status_error(openai.RateLimitError, 429), TransientProviderError),
        (status_error(openai.InternalServerError, 503), TransientProviderError),
        (openai.APITimeoutError(request=REQUEST), TransientProviderError),
        (openai.APIConnectionError(request=REQUEST), TransientProviderError),
    ],
)
def test_map_openai_error(error, expected):
    mapped = map_openai_error(error, "openai")

    assert type(mapped) is expected
    assert mapped.details["provider"] == "openai"


def test_map_openai_error_uses_given_transient_class():
    mapped = map_openai_error(
        status_error(openai.RateLimitError, 429), "completion", CompositionError
    )

    assert isinstance(mapped, CompositionError)
    assert mapped.details["status_code"] == 429


def embedding_client(create):
    client = MagicMock()
    client.embeddings.create = create
    return client


@pytest.mark.asyncio
async def test_embeddings_are_returned_in_input_order():
    response = SimpleNamespace(
        data=[
            SimpleNamespace(index=1, embedding=[0.0, 1.0]),
            SimpleNamespace(index=0, embedding=[1.0, 0.0]),
        ]
    )
    create = AsyncMock(return_value=response)
    backend = OpenAIEmbeddingBackend(embedding_client(create), "text-embedding-ada-002")

    vectors = await backend.embed_texts(["first", "second"])

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    create.assert_awaited_once_with(model="text-embedding-ada-002", input=["first", "second"])


@pytest.mark.asyncio
async def test_embedding_errors_are_mapped():
    create = AsyncMock(side_effect=status_error(openai.RateLimitError, 429))
    backend = OpenAIEmbeddingBackend(embedding_client(create), "m", name="azure")

    with pytest.raises(TransientProviderError) as exc_info:
        await backend.embed_texts(["x"])

    assert exc_info.value.details["provider"] == "azure"


def test_missing_credentials_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        OpenAIEmbeddingBackend.from_openai(api_key=None, model="m")
    with pytest.raises(ConfigurationError):
        OpenAIEmbeddingBackend.from_azure(
            api_key="k", endpoint=None, deployment="d", api_version="2023-05-15"
        )
    with pytest.raises(ConfigurationError):
        OpenAIChatClient(api_key=None, base_url=None)


def chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.mark.asyncio
async def test_chat_client_returns_completion():
    client = OpenAIChatClient(api_key="sk-test", model="gpt-4-turbo")
    client._client = MagicMock()
    client._client.chat.completions.create = AsyncMock(return_value=chat_response("hi"))

    text = await client.complete([{"role": "user", "content": "hello"}], temperature=0.7)

    assert text == "hi"
    kwargs = client._client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4-turbo"
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 1000


@pytest.mark.asyncio
async def test_chat_client_empty_completion_raises():
    client = OpenAIChatClient(api_key="sk-test")
    client._client = MagicMock()
    client._client.chat.completions.create = AsyncMock(return_value=chat_response(""))

    with pytest.raises(CompositionError):
        await client.complete([{"role": "user", "content": "hello"}])


@pytest.mark.asyncio
async def test_chat_client_server_error_is_composition_error():
    client = OpenAIChatClient(api_key="sk-test")
    client._client = MagicMock()
    client._client.chat.completions.create = AsyncMock(
        side_effect=status_error(openai.InternalServerError, 500)
    )

    with pytest.raises(CompositionError):
        await client.complete([{"role": "user", "content": "hello"}])
