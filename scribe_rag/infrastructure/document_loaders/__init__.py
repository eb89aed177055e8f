"""Document loader implementations."""
from .pdf_loader import PDFLoader
from .docx_loader import DocxLoader
from .text_loader import TextLoader
from .composite_loader import CompositeLoader
from .document_factory import document_id_for, make_document

__all__ = [
    "PDFLoader",
    "DocxLoader",
    "TextLoader",
    "CompositeLoader",
    "document_id_for",
    "make_document",
]
