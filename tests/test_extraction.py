"""
Unit tests for PDF text extraction and document strategies.
"""
import pytest

from conftest import build_blank_pdf, build_pdf
from core.exceptions import ConfigurationError, EmptyDocumentError, ExtractionError
from core.extraction import (
    PassthroughStrategy,
    TextExtractionStrategy,
    extract_text,
    get_document_strategy,
    inspect_pdf,
)


def test_pages_joined_by_newline():
    """Pages are concatenated in order, one line per page."""
    pdf = build_pdf([["Hola mundo"], ["Segunda pagina"]])
    assert extract_text(pdf) == "Hola mundo\nSegunda pagina"


def test_words_within_page_joined_by_single_space():
    """Text items inside a page are joined with single spaces."""
    pdf = build_pdf([["05/03/2024 TIENDA INGLESA -8500.00", "07/03/2024 PEDIDOSYA -1500.00"]])
    text = extract_text(pdf)
    assert text == "05/03/2024 TIENDA INGLESA -8500.00 07/03/2024 PEDIDOSYA -1500.00"
    assert "\n" not in text


def test_statement_pdf_has_text(statement_pdf):
    """A statement with a text layer yields non-empty text covering every page."""
    text = extract_text(statement_pdf)
    assert text.strip()
    assert len(text.split("\n")) == 2
    assert "SUELDO" in text
    assert "NETFLIX" in text


def test_scanned_pdf_raises_empty_document():
    """A PDF without a text layer is reported as empty, not as corrupt."""
    with pytest.raises(EmptyDocumentError) as exc_info:
        extract_text(build_blank_pdf(pages=2))
    assert exc_info.value.details["pages"] == 2


def test_empty_content_stream_raises_empty_document():
    """Pages whose content streams draw no text count as empty."""
    with pytest.raises(EmptyDocumentError):
        extract_text(build_pdf([[], []]))


def test_garbage_bytes_raise_extraction_error():
    """Bytes that are not a PDF fail structurally."""
    with pytest.raises(ExtractionError) as exc_info:
        extract_text(b"this is definitely not a pdf document")
    assert exc_info.value.details["encrypted"] is False


def test_empty_bytes_raise_extraction_error():
    """An empty upload is not a PDF."""
    with pytest.raises(ExtractionError):
        extract_text(b"")


def test_password_protected_pdf_raises_extraction_error():
    """Encrypted PDFs fail with ExtractionError and are flagged as such."""
    with pytest.raises(ExtractionError) as exc_info:
        extract_text(build_blank_pdf(password="secreto"))
    assert exc_info.value.details["encrypted"] is True


def test_inspect_pdf_counts_pages(statement_pdf):
    """Pre-flight returns the page count."""
    assert inspect_pdf(statement_pdf) == 2


def test_text_strategy_returns_text(statement_pdf):
    """Text strategy sends text only."""
    payload = TextExtractionStrategy().prepare(statement_pdf)
    assert payload.text
    assert payload.pdf_bytes is None
    assert not payload.is_passthrough
    assert payload.page_count == 2


def test_passthrough_strategy_keeps_bytes(statement_pdf):
    """Passthrough strategy forwards the original bytes untouched."""
    payload = PassthroughStrategy().prepare(statement_pdf)
    assert payload.is_passthrough
    assert payload.pdf_bytes == statement_pdf
    assert payload.text is None
    assert payload.page_count == 2


def test_passthrough_strategy_rejects_corrupt_pdf():
    """Passthrough still fails fast on unreadable files."""
    with pytest.raises(ExtractionError):
        PassthroughStrategy().prepare(b"%PDF-1.4 truncated")


def test_passthrough_strategy_accepts_scanned_pdf():
    """Scanned PDFs are left for the service to read natively."""
    payload = PassthroughStrategy().prepare(build_blank_pdf())
    assert payload.page_count == 1


def test_get_document_strategy():
    """Strategies are selected by configured mode."""
    assert isinstance(get_document_strategy("text"), TextExtractionStrategy)
    assert isinstance(get_document_strategy("PDF"), PassthroughStrategy)


def test_get_document_strategy_unknown_mode():
    """Unknown modes are a configuration problem."""
    with pytest.raises(ConfigurationError):
        get_document_strategy("ocr")
