import logging
import zipfile
from pathlib import Path
from typing import Optional

from docx.opc.exceptions import PackageNotFoundError
from pypdf.errors import PdfReadError

from scribe_rag.core.models.document import Document

from .docx_loader import DocxLoader
from .pdf_loader import PDFLoader
from .text_loader import TextLoader

logger = logging.getLogger(__name__)


class CompositeLoader:
    """Dispatches to the first loader that handles the file type."""

    def __init__(self):
        self._loaders = [
            PDFLoader(),
            DocxLoader(),
            TextLoader(),
        ]

    def supports(self, file_path: Path) -> bool:
        return any(loader.supports(file_path) for loader in self._loaders)

    def load(self, file_path: Path) -> Optional[Document]:
        for loader in self._loaders:
            if loader.supports(file_path):
                try:
                    return loader.load(file_path)
                except (
                    OSError,
                    ValueError,
                    KeyError,
                    zipfile.BadZipFile,
                    PackageNotFoundError,
                    PdfReadError,
                ) as e:
                    logger.error(f"Failed to load {file_path}: {e}")
                    return None
        return None
