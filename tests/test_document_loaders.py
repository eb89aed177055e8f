from unittest.mock import MagicMock, patch

from scribe_rag.infrastructure.document_loaders import (
    CompositeLoader,
    TextLoader,
    document_id_for,
)


def test_text_loader_uses_first_heading_as_title(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("intro\n# Asthma Care\nbody\n# Later", encoding="utf-8")

    document = TextLoader().load(path)

    assert document.title == "Asthma Care"
    assert document.source == "notes.md"
    assert document.id == document_id_for(path)
    assert document.url.startswith("file://")


def test_text_loader_falls_back_to_file_stem(tmp_path):
    path = tmp_path / "plain.txt"
    path.write_text("no heading", encoding="utf-8")

    assert TextLoader().load(path).title == "plain"


def test_document_id_is_stable(tmp_path):
    path = tmp_path / "a.txt"
    assert document_id_for(path) == document_id_for(tmp_path / "." / "a.txt")
    assert len(document_id_for(path)) == 16


def test_composite_loader_returns_none_on_broken_file(tmp_path):
    path = tmp_path / "broken.docx"
    path.write_bytes(b"not a zip archive")

    assert CompositeLoader().load(path) is None


def test_composite_loader_skips_unsupported(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,b", encoding="utf-8")
    loader = CompositeLoader()

    assert loader.supports(path) is False
    assert loader.load(path) is None


@patch("scribe_rag.infrastructure.document_loaders.pdf_loader.PdfReader")
def test_pdf_loader_reads_metadata(reader_cls, tmp_path):
    page = MagicMock()
    page.extract_text.return_value = " page text "
    reader = reader_cls.return_value
    reader.pages = [page, page]
    reader.metadata.title = "Guideline"
    reader.metadata.author = "NICE"
    reader.metadata.creation_date = None

    document = CompositeLoader().load(tmp_path / "guide.pdf")

    assert document.text == "page text\n\npage text"
    assert document.title == "Guideline"
    assert document.author == "NICE"
