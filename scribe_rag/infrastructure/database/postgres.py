"""
PostgreSQL connection handling for the document and chunk stores.

Owns the asyncpg pool, registers the pgvector codec on every connection
and creates the schema. Vector support is detected once at connect time.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Optional

import asyncpg
from pgvector.asyncpg import register_vector

from scribe_rag.core.exceptions import (
    ConfigurationError,
    DataIntegrityError,
    IndexUnavailableError,
    TransientProviderError,
)
from scribe_rag.core.models.document import Document

logger = logging.getLogger(__name__)

DOCUMENTS_DDL = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    text TEXT NOT NULL,
    source TEXT NOT NULL,
    url TEXT,
    author TEXT,
    published_date TIMESTAMPTZ,
    content_hash TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

CHUNKS_DDL = """
CREATE TABLE IF NOT EXISTS chunks (
    id BIGSERIAL PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL,
    embedding {embedding_type},
    metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
    UNIQUE (document_id, chunk_index)
)
"""

CHUNKS_TEXT_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS chunks_content_tsv_idx
ON chunks USING GIN (to_tsvector('english', content))
"""

UPSERT_DOCUMENT_SQL = """
INSERT INTO documents
    (id, title, text, source, url, author, published_date, content_hash)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
ON CONFLICT (id) DO UPDATE SET
    title = EXCLUDED.title,
    text = EXCLUDED.text,
    source = EXCLUDED.source,
    url = EXCLUDED.url,
    author = EXCLUDED.author,
    published_date = EXCLUDED.published_date,
    content_hash = EXCLUDED.content_hash,
    updated_at = now()
"""


async def upsert_document(conn: asyncpg.Connection, document: Document) -> None:
    await conn.execute(
        UPSERT_DOCUMENT_SQL,
        document.id,
        document.title,
        document.text,
        document.source,
        document.url,
        document.author,
        document.published_date,
        document.content_hash,
    )


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Map driver errors onto the pipeline's error kinds."""
    try:
        yield
    except (asyncpg.UndefinedFunctionError, asyncpg.UndefinedObjectError) as e:
        raise IndexUnavailableError(
            f"{operation}: vector search is not available", {"error": str(e)}
        ) from e
    except asyncio.TimeoutError as e:
        raise TransientProviderError(f"{operation}: timed out") from e
    except (
        OSError,
        asyncpg.PostgresConnectionError,
        asyncpg.InterfaceError,
        asyncpg.InsufficientResourcesError,
    ) as e:
        raise TransientProviderError(
            f"{operation}: database unavailable", {"error": str(e)}
        ) from e
    except asyncpg.IntegrityConstraintViolationError as e:
        raise DataIntegrityError(
            f"{operation}: constraint violated", {"error": str(e)}
        ) from e
    except asyncpg.DataError as e:
        # e.g. vectors of different dimensions
        raise ConfigurationError(
            f"{operation}: rejected by the database", {"error": str(e)}
        ) from e
    except asyncpg.PostgresError as e:
        raise TransientProviderError(
            f"{operation}: database error", {"error": str(e)}
        ) from e


class PostgresDatabase:
    """asyncpg pool with pgvector registration."""

    def __init__(
        self,
        dsn: str,
        dimension: int = 1536,
        min_size: int = 1,
        max_size: int = 10,
    ):
        """Initialize database handle.

        Args:
            dsn: PostgreSQL connection string.
            dimension: Embedding dimension for the vector column.
            min_size: Minimum pool size.
            max_size: Maximum pool size.
        """
        self._dsn = dsn
        self._dimension = dimension
        self._min_size = min_size
        self._max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None
        self._vector_available: Optional[bool] = None

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def vector_available(self) -> bool:
        return bool(self._vector_available)

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise TransientProviderError("Database is not connected")
        return self._pool

    async def connect(self) -> None:
        """Detect the vector extension, then open the pool."""
        if self._pool is not None:
            return

        with translate_errors("connect"):
            conn = await asyncpg.connect(self._dsn)
            try:
                self._vector_available = await self._ensure_extension(conn)
            finally:
                await conn.close()

            self._pool = await asyncpg.create_pool(
                self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                init=self._init_connection,
            )
        logger.info(
            f"Connected to PostgreSQL (vector search "
            f"{'enabled' if self._vector_available else 'disabled'})"
        )

    async def disconnect(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Disconnected from PostgreSQL")

    @asynccontextmanager
    async def acquire(self, timeout: Optional[float] = None) -> AsyncIterator[asyncpg.Connection]:
        with translate_errors("acquire"):
            conn = await self.pool.acquire(timeout=timeout)
        try:
            yield conn
        finally:
            await self.pool.release(conn)

    async def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        embedding_type = (
            f"vector({self._dimension})" if self._vector_available else "real[]"
        )
        async with self.acquire() as conn:
            with translate_errors("ensure_schema"):
                await conn.execute(DOCUMENTS_DDL)
                await conn.execute(CHUNKS_DDL.format(embedding_type=embedding_type))
                await conn.execute(CHUNKS_TEXT_INDEX_DDL)
        logger.info(f"Schema ready (embedding column: {embedding_type})")

    async def _ensure_extension(self, conn: asyncpg.Connection) -> bool:
        try:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        except asyncpg.PostgresError as e:
            logger.warning(f"Could not create the vector extension: {e}")

        installed = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM pg_extension WHERE extname = 'vector')"
        )
        if not installed:
            logger.error(
                "pgvector extension is not installed; vector search is disabled "
                "and retrieval will use text search"
            )
        return bool(installed)

    async def _init_connection(self, conn: asyncpg.Connection) -> None:
        if not self._vector_available:
            return
        try:
            await register_vector(conn)
        except ValueError as e:
            # extension dropped after connect
            self._vector_available = False
            logger.error(f"Cannot register the vector type: {e}")
