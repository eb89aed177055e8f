import pytest

from scribe_rag.config.settings import Settings
from scribe_rag.container import build_embedding_backends, configure_container
from scribe_rag.core.protocols.embedder import EmbedderProtocol
from scribe_rag.core.protocols.vector_store import ChunkStoreProtocol
from scribe_rag.core.services.chat_service import ChatService
from scribe_rag.core.services.format_service import TranscriptFormatter
from scribe_rag.core.services.response_cache import ResponseCache


def make_settings(**overrides):
    values = {
        "openai_api_key": "sk-test",
        "azure_openai_api_key": None,
        "azure_openai_endpoint": None,
        "azure_embedding_deployment": None,
        "embedding_providers": ["openai", "azure"],
    }
    values.update(overrides)
    return Settings(**values)


def test_unconfigured_providers_are_skipped():
    backends = build_embedding_backends(make_settings())

    assert [b.name for b in backends] == ["openai"]


def test_no_usable_provider():
    backends = build_embedding_backends(
        make_settings(openai_api_key=None, embedding_providers=["openai", "bogus"])
    )

    assert backends == []


def test_services_share_one_cache():
    container = configure_container(make_settings())

    chat = container.resolve(ChatService)
    formatter = container.resolve(TranscriptFormatter)

    assert chat._cache is formatter._cache
    assert chat._cache is container.resolve(ResponseCache)
    assert isinstance(container.resolve(EmbedderProtocol), EmbedderProtocol)
    assert isinstance(container.resolve(ChunkStoreProtocol), ChunkStoreProtocol)


def test_each_call_builds_a_new_container():
    settings = make_settings()

    first = configure_container(settings)
    second = configure_container(settings)

    assert first.resolve(ResponseCache) is not second.resolve(ResponseCache)


def test_formatter_without_completion_credentials_uses_rules():
    container = configure_container(
        make_settings(openai_api_key=None, llm_base_url=None, openai_base_url=None)
    )

    assert container.resolve(TranscriptFormatter)._llm is None


def test_unknown_dependency():
    container = configure_container(make_settings())

    with pytest.raises(KeyError):
        container.resolve(dict)
