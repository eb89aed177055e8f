from pathlib import Path

from pypdf import PdfReader

from scribe_rag.core.models.document import Document
from scribe_rag.infrastructure.document_loaders.document_factory import make_document


class PDFLoader:

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() == ".pdf"

    def load(self, file_path: Path) -> Document:
        reader = PdfReader(file_path)
        text_parts = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text.strip())

        info = reader.metadata
        return make_document(
            file_path,
            "\n\n".join(text_parts),
            title=info.title if info else None,
            author=info.author if info else None,
            published_date=info.creation_date if info else None,
        )
