import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from .config.settings import Settings
from .core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


def build_embedding_backends(settings: Settings) -> list:
    """Create embedding backends in configured order, skipping unusable ones."""
    from .infrastructure.embeddings.openai_embedder import OpenAIEmbeddingBackend
    from .infrastructure.embeddings.sentence_transformer import (
        SentenceTransformerEmbedder,
    )

    factories = {
        "openai": lambda: OpenAIEmbeddingBackend.from_openai(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.openai_base_url,
            timeout=settings.embedding_timeout,
        ),
        "azure": lambda: OpenAIEmbeddingBackend.from_azure(
            api_key=settings.azure_openai_api_key,
            endpoint=settings.azure_openai_endpoint,
            deployment=settings.azure_embedding_deployment,
            api_version=settings.azure_openai_api_version,
            timeout=settings.embedding_timeout,
        ),
        "local": lambda: SentenceTransformerEmbedder(settings.local_embedding_model),
    }

    backends = []
    for name in settings.embedding_providers:
        if name not in factories:
            logger.error(f"Unknown embedding provider '{name}', skipped")
            continue
        try:
            backends.append(factories[name]())
        except ConfigurationError as e:
            logger.error(f"Embedding provider '{name}' disabled: {e}")

    if not backends:
        logger.error(
            "No embedding provider is configured; queries will use "
            f"{settings.embedding_fallback} vectors and keyword search"
        )
    return backends


def configure_container(settings: Settings) -> Container:
    """Configure a container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.document_store import DocumentStoreProtocol
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.vector_store import ChunkStoreProtocol
    from .core.services.answer_composer import AnswerComposer
    from .core.services.chat_service import ChatService
    from .core.services.embedding_service import FallbackEmbedder
    from .core.services.format_service import TranscriptFormatter
    from .core.services.ingest_service import IngestService
    from .core.services.response_cache import ResponseCache
    from .core.services.retrieval_service import Retriever
    from .infrastructure.database.postgres import PostgresDatabase
    from .infrastructure.document_stores.postgres_document_store import (
        PostgresDocumentStore,
    )
    from .infrastructure.llm.openai_client import OpenAIChatClient
    from .infrastructure.vector_stores.pgvector_store import PgVectorChunkStore

    container = Container()

    def optional_llm() -> Optional[OpenAIChatClient]:
        try:
            return container.resolve(LLMProtocol)
        except ConfigurationError as e:
            logger.error(f"Completion provider unavailable, using rules only: {e}")
            return None

    container.register(
        PostgresDatabase,
        lambda: PostgresDatabase(
            dsn=settings.postgres_dsn,
            dimension=settings.embedding_dimension,
            min_size=settings.postgres_min_pool_size,
            max_size=settings.postgres_max_pool_size,
        ),
        singleton=True,
    )

    container.register(
        ChunkStoreProtocol,
        lambda: PgVectorChunkStore(
            database=container.resolve(PostgresDatabase),
            dimension=settings.embedding_dimension,
            metric=settings.distance_metric,
            timeout=settings.search_timeout,
        ),
        singleton=True,
    )

    container.register(
        DocumentStoreProtocol,
        lambda: PostgresDocumentStore(
            database=container.resolve(PostgresDatabase),
            timeout=settings.search_timeout,
        ),
        singleton=True,
    )

    container.register(
        EmbedderProtocol,
        lambda: FallbackEmbedder(
            backends=build_embedding_backends(settings),
            dimension=settings.embedding_dimension,
            timeout=settings.embedding_timeout,
            fallback=settings.embedding_fallback,
        ),
        singleton=True,
    )

    container.register(
        LLMProtocol,
        lambda: OpenAIChatClient(
            api_key=settings.openai_api_key,
            base_url=settings.llm_base_url or settings.openai_base_url,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout=settings.completion_timeout,
        ),
        singleton=True,
    )

    container.register(
        ResponseCache,
        lambda: ResponseCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
            single_flight=settings.cache_single_flight,
        ),
        singleton=True,
    )

    container.register(
        Retriever,
        lambda: Retriever(
            embedder=container.resolve(EmbedderProtocol),
            chunk_store=container.resolve(ChunkStoreProtocol),
            document_store=container.resolve(DocumentStoreProtocol),
            top_k=settings.rag_top_k,
            search_timeout=settings.search_timeout,
            allow_random_context=settings.allow_random_context,
        ),
        singleton=True,
    )

    container.register(
        AnswerComposer,
        lambda: AnswerComposer(
            llm=container.resolve(LLMProtocol),
            timeout=settings.completion_timeout,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        ),
        singleton=True,
    )

    container.register(
        ChatService,
        lambda: ChatService(
            retriever=container.resolve(Retriever),
            composer=container.resolve(AnswerComposer),
            cache=container.resolve(ResponseCache),
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            embedder=container.resolve(EmbedderProtocol),
            chunk_store=container.resolve(ChunkStoreProtocol),
            document_store=container.resolve(DocumentStoreProtocol),
            docs_path=settings.docs_path,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
        ),
        singleton=True,
    )

    container.register(
        TranscriptFormatter,
        lambda: TranscriptFormatter(
            llm=optional_llm(),
            cache=container.resolve(ResponseCache),
            timeout=settings.completion_timeout,
            model=settings.format_model,
            temperature=settings.format_temperature,
            max_tokens=settings.format_max_tokens,
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
