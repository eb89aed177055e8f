import json
import logging
import math
from typing import Optional

import asyncpg

from scribe_rag.core.exceptions import ConfigurationError, IndexUnavailableError
from scribe_rag.core.models.document import Chunk, Document, ScoredChunk
from scribe_rag.infrastructure.database.postgres import (
    PostgresDatabase,
    translate_errors,
    upsert_document,
)

logger = logging.getLogger(__name__)

DISTANCE_OPERATORS = {
    "cosine": "<=>",
    "inner_product": "<#>",
    "l2": "<->",
}

_COLUMNS = "document_id, chunk_index, content, metadata"


class PgVectorChunkStore:
    """Chunk store on PostgreSQL with pgvector nearest-neighbour search."""

    def __init__(
        self,
        database: PostgresDatabase,
        dimension: int = 1536,
        metric: str = "cosine",
        timeout: Optional[float] = 5.0,
    ):
        """Initialize chunk store.

        Args:
            database: Connected database handle.
            dimension: Expected embedding dimension.
            metric: Distance metric, fixed per deployment.
            timeout: Per-query timeout in seconds.
        """
        if metric not in DISTANCE_OPERATORS:
            raise ConfigurationError(
                f"Unknown distance metric: {metric}",
                {"supported": sorted(DISTANCE_OPERATORS)},
            )
        self._db = database
        self._dimension = dimension
        self._metric = metric
        self._operator = DISTANCE_OPERATORS[metric]
        self._timeout = timeout

    async def search(
        self, query_vector: list[float], limit: int = 5
    ) -> list[ScoredChunk]:
        if not self._db.vector_available:
            raise IndexUnavailableError(
                "Vector search is not available", {"metric": self._metric}
            )
        if len(query_vector) != self._dimension:
            raise ConfigurationError(
                "Query vector has the wrong dimension",
                {"expected": self._dimension, "got": len(query_vector)},
            )

        sql = (
            f"SELECT {_COLUMNS}, embedding {self._operator} $1 AS distance "
            f"FROM chunks WHERE embedding IS NOT NULL "
            f"ORDER BY distance, document_id, chunk_index LIMIT $2"
        )
        rows = await self._fetch("search", sql, list(query_vector), limit)

        results = []
        for row in rows:
            distance = row["distance"]
            # cosine against a zero vector is undefined
            if distance is None or math.isnan(distance):
                continue
            results.append(self._to_scored(row, float(distance)))

        logger.debug(f"Vector search: {len(results)} of {len(rows)} rows usable")
        return results

    async def text_search(self, query: str, limit: int = 5) -> list[ScoredChunk]:
        if not query.strip():
            return []

        sql = (
            f"SELECT {_COLUMNS}, "
            f"1 - ts_rank(to_tsvector('english', content), "
            f"plainto_tsquery('english', $1), 32) AS distance "
            f"FROM chunks "
            f"WHERE to_tsvector('english', content) @@ plainto_tsquery('english', $1) "
            f"ORDER BY distance, document_id, chunk_index LIMIT $2"
        )
        rows = await self._fetch("text_search", sql, query, limit)
        return [self._to_scored(row, float(row["distance"])) for row in rows]

    async def random_sample(self, limit: int = 5) -> list[ScoredChunk]:
        sql = f"SELECT {_COLUMNS} FROM chunks ORDER BY random() LIMIT $1"
        rows = await self._fetch("random_sample", sql, limit)
        return [self._to_scored(row, None) for row in rows]

    async def upsert_chunks(
        self,
        document_id: str,
        chunks: list[Chunk],
        document: Optional[Document] = None,
    ) -> int:
        """Replace the chunks of a document, writing the document row first.

        Both writes share one transaction, so a failed chunk insert leaves
        the previous document row and chunks in place.
        """
        records = []
        for index, chunk in enumerate(chunks):
            if chunk.embedding is not None and len(chunk.embedding) != self._dimension:
                raise ConfigurationError(
                    "Chunk embedding has the wrong dimension",
                    {
                        "document_id": document_id,
                        "expected": self._dimension,
                        "got": len(chunk.embedding),
                    },
                )
            records.append(
                (
                    document_id,
                    index,
                    chunk.content,
                    list(chunk.embedding) if chunk.embedding is not None else None,
                    json.dumps(chunk.metadata),
                )
            )

        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("upsert_chunks"):
                async with conn.transaction():
                    if document is not None:
                        await upsert_document(conn, document)
                    await conn.execute(
                        "DELETE FROM chunks WHERE document_id = $1", document_id
                    )
                    if records:
                        await conn.executemany(
                            "INSERT INTO chunks "
                            "(document_id, chunk_index, content, embedding, metadata) "
                            "VALUES ($1, $2, $3, $4, $5::jsonb)",
                            records,
                        )

        logger.info(f"Stored {len(records)} chunks for {document_id}")
        return len(records)

    async def delete_chunks(self, document_id: str) -> int:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("delete_chunks"):
                status = await conn.execute(
                    "DELETE FROM chunks WHERE document_id = $1", document_id
                )
        # status looks like "DELETE 3"
        return int(status.split()[-1])

    async def has_fallback_embeddings(self, document_id: str) -> bool:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("has_fallback_embeddings"):
                return await conn.fetchval(
                    "SELECT EXISTS (SELECT 1 FROM chunks WHERE document_id = $1 "
                    "AND metadata->>'embedding_provider' IS NULL)",
                    document_id,
                )

    async def count_chunks(self, document_id: Optional[str] = None) -> int:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("count_chunks"):
                if document_id is None:
                    return await conn.fetchval("SELECT count(*) FROM chunks")
                return await conn.fetchval(
                    "SELECT count(*) FROM chunks WHERE document_id = $1", document_id
                )

    async def _fetch(self, operation: str, sql: str, *args) -> list[asyncpg.Record]:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors(operation):
                return await conn.fetch(sql, *args, timeout=self._timeout)

    @staticmethod
    def _to_scored(row: asyncpg.Record, distance: Optional[float]) -> ScoredChunk:
        metadata = row["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        return ScoredChunk(
            chunk=Chunk(
                document_id=row["document_id"],
                chunk_index=row["chunk_index"],
                content=row["content"],
                metadata=metadata or {},
            ),
            distance=distance,
        )
