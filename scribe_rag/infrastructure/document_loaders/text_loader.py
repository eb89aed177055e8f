from pathlib import Path
from typing import Optional

from scribe_rag.core.models.document import Document
from scribe_rag.infrastructure.document_loaders.document_factory import make_document


class TextLoader:

    EXTENSIONS = {".txt", ".md", ".markdown"}

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.EXTENSIONS

    def load(self, file_path: Path) -> Document:
        text = file_path.read_text(encoding="utf-8")
        return make_document(file_path, text, title=self._heading(text))

    @staticmethod
    def _heading(text: str) -> Optional[str]:
        for line in text.splitlines():
            if line.startswith("# "):
                return line[2:]
        return None
