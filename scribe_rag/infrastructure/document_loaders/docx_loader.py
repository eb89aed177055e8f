from pathlib import Path

import docx

from scribe_rag.core.models.document import Document
from scribe_rag.infrastructure.document_loaders.document_factory import make_document


class DocxLoader:

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() == ".docx"

    def load(self, file_path: Path) -> Document:
        doc = docx.Document(file_path)
        paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        props = doc.core_properties
        return make_document(
            file_path,
            "\n\n".join(paragraphs),
            title=props.title,
            author=props.author,
            published_date=props.created,
        )
