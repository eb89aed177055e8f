"""Document store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

from ..models.document import Document


@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """Protocol for parent document storage."""

    async def get(self, document_id: str) -> Optional[Document]:
        """Get a document by id."""
        ...

    async def get_many(self, document_ids: list[str]) -> dict[str, Document]:
        """Get documents by id. Missing ids are absent from the result."""
        ...

    async def upsert(self, document: Document) -> None:
        """Insert or replace a document."""
        ...

    async def delete(self, document_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        ...
