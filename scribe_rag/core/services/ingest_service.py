"""Ingest service - chunking, embedding and storing reference articles."""

import logging
from pathlib import Path
from typing import Optional

from ..chunking import chunk_text
from ..models.document import Chunk, Document
from ..protocols.document_store import DocumentStoreProtocol
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import ChunkStoreProtocol

logger = logging.getLogger(__name__)


class IngestService:
    """Service for indexing documents into the chunk store."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        chunk_store: ChunkStoreProtocol,
        document_store: DocumentStoreProtocol,
        docs_path: str = "./docs",
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
    ):
        """Initialize ingest service.

        Args:
            embedder: Embedding service.
            chunk_store: Chunk store.
            document_store: Parent document store.
            docs_path: Path to documents folder.
            chunk_size: Maximum chunk size in characters.
            chunk_overlap: Overlap between chunks.
        """
        self._embedder = embedder
        self._chunk_store = chunk_store
        self._document_store = document_store
        self._docs_path = Path(docs_path)
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

        self._loader: Optional["CompositeLoader"] = None

    @property
    def loader(self):
        """Lazy load document loader."""
        if self._loader is None:
            from ...infrastructure.document_loaders import CompositeLoader

            self._loader = CompositeLoader()
        return self._loader

    def build_chunks(self, document: Document) -> list[str]:
        return chunk_text(document.text, self._chunk_size, self._chunk_overlap)

    async def ingest(self, document: Document, force: bool = False) -> int:
        """Chunk, embed and store one document, replacing its old chunks.

        Args:
            document: Document to index.
            force: Re-index even if the stored text is identical and
                its chunks carry real embeddings.

        Returns:
            Number of chunks stored, 0 if skipped.
        """
        if not force:
            existing = await self._document_store.get(document.id)
            if existing is not None and existing.content_hash == document.content_hash:
                if not await self._chunk_store.has_fallback_embeddings(document.id):
                    logger.debug(f"Skip unchanged: {document.id}")
                    return 0
                logger.info(f"Re-embedding {document.id}: stored with fallback vectors")

        texts = self.build_chunks(document)
        batch = await self._embedder.embed_batch(texts)
        if batch.is_fallback:
            logger.warning(
                f"Document {document.id} indexed with fallback embeddings; "
                "it will only be found by keyword search"
            )

        metadata = {
            "chunk_size": self._chunk_size,
            "chunk_overlap": self._chunk_overlap,
            "embedding_provider": batch.provider,
        }
        chunks = [
            Chunk(
                document_id=document.id,
                chunk_index=i,
                content=text,
                embedding=vector,
                metadata=dict(metadata),
            )
            for i, (text, vector) in enumerate(zip(texts, batch.vectors))
        ]

        stored = await self._chunk_store.upsert_chunks(
            document.id, chunks, document=document
        )

        logger.info(f"Indexed {document.id} ('{document.title[:40]}'): {stored} chunks")
        return stored

    async def ingest_directory(
        self, path: Optional[str] = None, force: bool = False
    ) -> int:
        """Index every supported file in a directory.

        Args:
            path: Directory to scan, docs_path by default.
            force: Force re-indexing of all documents.

        Returns:
            Number of chunks indexed.
        """
        docs_path = Path(path) if path else self._docs_path
        if not docs_path.exists():
            logger.error(f"Docs path not found: {docs_path}")
            return 0

        total_indexed = 0
        files = 0
        for file_path in sorted(docs_path.iterdir()):
            if not self.loader.supports(file_path):
                continue

            document = self.loader.load(file_path)
            if document is None or not document.text:
                continue

            total_indexed += await self.ingest(document, force=force)
            files += 1

        logger.info(f"Indexing complete: {total_indexed} chunks from {files} files")
        return total_indexed

    async def delete(self, document_id: str) -> bool:
        """Remove a document and all of its chunks.

        Returns:
            False if the document did not exist.
        """
        removed = await self._chunk_store.delete_chunks(document_id)
        existed = await self._document_store.delete(document_id)
        logger.info(f"Deleted {document_id}: {removed} chunks")
        return existed
