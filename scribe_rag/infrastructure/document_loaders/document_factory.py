import hashlib
from datetime import datetime
from pathlib import Path
from typing import Optional

from scribe_rag.core.models.document import Document


def document_id_for(file_path: Path) -> str:
    """Stable id derived from the file's resolved path."""
    return hashlib.sha256(str(file_path.resolve()).encode("utf-8")).hexdigest()[:16]


def make_document(
    file_path: Path,
    text: str,
    title: Optional[str] = None,
    author: Optional[str] = None,
    published_date: Optional[datetime] = None,
) -> Document:
    return Document(
        id=document_id_for(file_path),
        title=(title or "").strip() or file_path.stem,
        text=text,
        source=file_path.name,
        url=file_path.resolve().as_uri(),
        author=(author or "").strip() or None,
        published_date=published_date,
    )
