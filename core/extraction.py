"""
PDF text extraction and the document strategies that feed the categorizer.

Two strategies share one interface: extract the text layer locally, or
pass the raw PDF through for the categorization service to read natively.
"""
import io
from dataclasses import dataclass
from typing import Optional

import pdfplumber
from pypdf import PasswordType, PdfReader

from core.config import EXTRACTION_MODES
from core.exceptions import ConfigurationError, EmptyDocumentError, ExtractionError
from core.logger import setup_logger

logger = setup_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class StatementPayload:
    """Document content handed to the categorization client."""
    text: Optional[str] = None
    pdf_bytes: Optional[bytes] = None
    page_count: int = 0

    @property
    def is_passthrough(self) -> bool:
        return self.pdf_bytes is not None


def inspect_pdf(pdf_bytes: bytes) -> int:
    """
    Check that the bytes are a readable, unprotected PDF.

    Args:
        pdf_bytes: Complete PDF content

    Returns:
        Number of pages

    Raises:
        ExtractionError: If the PDF is malformed or needs a password
    """
    if not pdf_bytes:
        raise ExtractionError("PDF is empty", details={"size": 0})

    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
            raise ExtractionError(
                "PDF is password-protected",
                details={"encrypted": True}
            )
        page_count = len(reader.pages)
    except ExtractionError:
        raise
    except Exception as e:
        logger.error(f"PDF pre-flight failed: {e}")
        raise ExtractionError(
            "PDF structure could not be parsed",
            details={"encrypted": False, "error": str(e), "size": len(pdf_bytes)}
        )

    if page_count == 0:
        raise ExtractionError("PDF has no pages", details={"encrypted": False})
    return page_count


def _extract_with_pdfplumber(pdf_bytes: bytes) -> str:
    """Join words in extraction order per page, pages separated by newlines."""
    pages = []
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        for page in pdf.pages:
            words = page.extract_words()
            pages.append(" ".join(word["text"] for word in words))
    return "\n".join(pages)


def _extract_with_pypdf(pdf_bytes: bytes) -> str:
    """Fallback engine; whitespace is collapsed to match the pdfplumber layout."""
    reader = PdfReader(io.BytesIO(pdf_bytes))
    if reader.is_encrypted:
        reader.decrypt("")
    return "\n".join(
        " ".join((page.extract_text() or "").split())
        for page in reader.pages
    )


def extract_text(pdf_bytes: bytes) -> str:
    """
    Extract the text layer of a PDF.

    Args:
        pdf_bytes: Complete PDF content

    Returns:
        Text of all pages in order, pages separated by a newline and
        words within a page joined by single spaces

    Raises:
        ExtractionError: If the PDF is malformed or password-protected
        EmptyDocumentError: If the PDF has no embedded text (likely scanned)
    """
    page_count = inspect_pdf(pdf_bytes)

    try:
        text = _extract_with_pdfplumber(pdf_bytes)
        if not text.strip():
            logger.info("pdfplumber found no text, trying pypdf")
            text = _extract_with_pypdf(pdf_bytes)
    except Exception as e:
        logger.error(f"Text extraction failed: {e}")
        raise ExtractionError(
            "Failed to extract text from PDF",
            details={"encrypted": False, "error": str(e), "pages": page_count}
        )

    if not text.strip():
        raise EmptyDocumentError(
            "PDF has no text layer",
            details={"pages": page_count}
        )

    logger.info(f"Extracted {len(text)} characters from {page_count} pages")
    return text


class DocumentStrategy:
    """Turns uploaded PDF bytes into a categorization payload."""

    mode = ""

    def prepare(self, pdf_bytes: bytes) -> StatementPayload:
        raise NotImplementedError


class TextExtractionStrategy(DocumentStrategy):
    """Extract the text layer locally and send only text."""

    mode = "text"

    def prepare(self, pdf_bytes: bytes) -> StatementPayload:
        text = extract_text(pdf_bytes)
        return StatementPayload(text=text, page_count=text.count("\n") + 1)


class PassthroughStrategy(DocumentStrategy):
    """Send the raw PDF; the service reads it natively."""

    mode = "pdf"

    def prepare(self, pdf_bytes: bytes) -> StatementPayload:
        page_count = inspect_pdf(pdf_bytes)
        logger.info(f"Passing through PDF ({len(pdf_bytes)} bytes, {page_count} pages)")
        return StatementPayload(pdf_bytes=pdf_bytes, page_count=page_count)


_STRATEGIES = {
    TextExtractionStrategy.mode: TextExtractionStrategy,
    PassthroughStrategy.mode: PassthroughStrategy,
}


def get_document_strategy(mode: str) -> DocumentStrategy:
    """
    Get the document strategy for a configured extraction mode.

    Raises:
        ConfigurationError: If the mode is unknown
    """
    strategy_cls = _STRATEGIES.get((mode or "").lower())
    if strategy_cls is None:
        raise ConfigurationError(
            f"Unknown extraction mode: {mode}",
            details={"valid_modes": list(EXTRACTION_MODES)}
        )
    return strategy_cls()
