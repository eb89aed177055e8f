import logging
from typing import Optional

import asyncpg

from scribe_rag.core.models.document import Document
from scribe_rag.infrastructure.database.postgres import (
    PostgresDatabase,
    translate_errors,
    upsert_document,
)

logger = logging.getLogger(__name__)

_COLUMNS = "id, title, text, source, url, author, published_date"


class PostgresDocumentStore:
    """Parent documents in the same database as their chunks."""

    def __init__(self, database: PostgresDatabase, timeout: Optional[float] = 5.0):
        self._db = database
        self._timeout = timeout

    async def get(self, document_id: str) -> Optional[Document]:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("get_document"):
                row = await conn.fetchrow(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = $1",
                    document_id,
                    timeout=self._timeout,
                )
        return self._to_document(row) if row else None

    async def get_many(self, document_ids: list[str]) -> dict[str, Document]:
        if not document_ids:
            return {}
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("get_documents"):
                rows = await conn.fetch(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = ANY($1::text[])",
                    list(document_ids),
                    timeout=self._timeout,
                )
        return {row["id"]: self._to_document(row) for row in rows}

    async def upsert(self, document: Document) -> None:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("upsert_document"):
                await upsert_document(conn, document)
        logger.debug(f"Upserted document {document.id}")

    async def delete(self, document_id: str) -> bool:
        async with self._db.acquire(timeout=self._timeout) as conn:
            with translate_errors("delete_document"):
                status = await conn.execute(
                    "DELETE FROM documents WHERE id = $1", document_id
                )
        return status != "DELETE 0"

    @staticmethod
    def _to_document(row: asyncpg.Record) -> Document:
        return Document(
            id=row["id"],
            title=row["title"],
            text=row["text"],
            source=row["source"],
            url=row["url"],
            author=row["author"],
            published_date=row["published_date"],
        )
