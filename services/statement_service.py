"""
Statement analysis service.
Runs the upload -> extraction -> categorization -> validation -> report chain.
"""
import asyncio
import time
from typing import Any, Dict, Optional, Tuple

from core.config import Settings, get_settings
from core.exceptions import (
    ConfigurationError,
    EmptyDocumentError,
    ExtractionError,
    MalformedResponseError,
    ProcessingTimeoutError,
    RenderError,
    SchemaError,
    ServiceUnavailableError,
    StatementAnalysisException,
    ValidationError,
)
from core.exporters import render_report
from core.extraction import PDF_MEDIA_TYPE, DocumentStrategy, get_document_strategy
from core.logger import setup_logger
from core.schema import AnalisisResultado
from core.validation import parse_analysis, parse_result_payload
from llm.categorize import categorize_statement
from llm.client import GeminiClientWrapper

logger = setup_logger(__name__)

GENERIC_ERROR_MESSAGE = "Error inesperado procesando el archivo."

# Exception type -> (HTTP status, user-facing message); None keeps the exception message
ERROR_RESPONSES = {
    ValidationError: (400, None),
    EmptyDocumentError: (
        422,
        "No se pudo extraer texto del PDF. Parece un PDF escaneado (imagen); "
        "subí el estado de cuenta descargado desde el banco."
    ),
    ExtractionError: (
        400,
        "No se pudo leer el PDF. Verificá que no esté dañado o protegido con contraseña."
    ),
    ServiceUnavailableError: (
        503,
        "El servicio de análisis no está disponible en este momento. Intentá de nuevo en unos minutos."
    ),
    ProcessingTimeoutError: (504, "El análisis tardó demasiado. Intentá de nuevo."),
    ConfigurationError: (
        500,
        "El servicio de análisis no está configurado. Contactá al administrador."
    ),
    MalformedResponseError: (502, "No se pudo interpretar la respuesta del análisis. Intentá de nuevo."),
    SchemaError: (502, "No se pudo interpretar la respuesta del análisis. Intentá de nuevo."),
    RenderError: (500, "Error generando el archivo Excel."),
}


def describe_error(exc: Exception) -> Tuple[int, str]:
    """
    Map a pipeline exception to an HTTP status and a user-facing message.

    Args:
        exc: Exception raised by the pipeline

    Returns:
        Tuple of (status_code, message)
    """
    for exc_type, (status_code, message) in ERROR_RESPONSES.items():
        if isinstance(exc, exc_type):
            if message is None:
                message = exc.message
            return status_code, message
    return 500, GENERIC_ERROR_MESSAGE


class StatementService:
    """Service for analysing statements and rendering their reports."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[GeminiClientWrapper] = None,
        strategy: Optional[DocumentStrategy] = None
    ):
        """
        Initialize statement service.

        Raises:
            ConfigurationError: If the extraction mode or API key is not configured
        """
        self.settings = settings or get_settings()
        self.strategy = strategy or get_document_strategy(self.settings.extraction_mode)
        self.client = client or GeminiClientWrapper(self.settings)

    def _remaining(self, deadline: float, stage: str) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ProcessingTimeoutError(
                f"Pipeline budget exhausted before {stage}",
                details={"stage": stage, "timeout": self.settings.pipeline_timeout}
            )
        return remaining

    def run_pipeline(self, pdf_bytes: bytes, deadline: float) -> AnalisisResultado:
        """
        Run the blocking analysis chain.

        Args:
            pdf_bytes: Validated PDF upload
            deadline: time.monotonic() value by which the chain must finish

        Returns:
            Canonical analysis result
        """
        logger.info(f"Analysing statement ({len(pdf_bytes)} bytes, mode={self.strategy.mode})")

        # 1. Extract text or prepare the passthrough payload
        payload = self.strategy.prepare(pdf_bytes)

        # 2. Categorize with the external service
        timeout = self._remaining(deadline, "categorization")
        cleaned = categorize_statement(self.client, payload, timeout=timeout)

        # 3. Validate, normalize and aggregate
        self._remaining(deadline, "validation")
        result = parse_analysis(
            cleaned,
            strict_categories=self.settings.strict_categories,
            tolerance=self.settings.reconcile_tolerance,
        )

        logger.info(
            f"Analysis complete: {len(result.movimientos)} transactions, "
            f"balance {result.resumen.balance:,.2f} {result.moneda}"
        )
        return result

    async def analyze(self, pdf_bytes: bytes) -> AnalisisResultado:
        """
        Analyse a statement within the configured wall-clock budget.

        Args:
            pdf_bytes: Validated PDF upload

        Returns:
            Canonical analysis result

        Raises:
            ProcessingTimeoutError: If the budget is exceeded
            StatementAnalysisException: Any typed pipeline failure
        """
        budget = self.settings.pipeline_timeout
        deadline = time.monotonic() + budget
        loop = asyncio.get_running_loop()

        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self.run_pipeline, pdf_bytes, deadline),
                timeout=budget
            )
        except asyncio.TimeoutError:
            logger.error(f"Pipeline exceeded {budget:.0f}s budget")
            raise ProcessingTimeoutError(
                f"Analysis exceeded {budget:.0f}s",
                details={"timeout": budget}
            )


def validate_upload(
    filename: Optional[str],
    content_type: Optional[str],
    content: Optional[bytes],
    settings: Optional[Settings] = None
) -> None:
    """
    Reject uploads that must not reach extraction.

    Raises:
        ValidationError: If the file is missing, empty, not a PDF or too large
    """
    settings = settings or get_settings()

    if content is None or not filename:
        raise ValidationError("No se recibió ningún archivo PDF.")

    if (content_type or "").split(";")[0].strip().lower() != PDF_MEDIA_TYPE:
        raise ValidationError(
            "El archivo debe ser un PDF.",
            details={"filename": filename, "content_type": content_type}
        )

    if not content:
        raise ValidationError("El archivo está vacío.", details={"filename": filename})

    if len(content) > settings.max_upload_bytes:
        raise ValidationError(
            f"El archivo supera el límite de {settings.max_upload_mb} MB.",
            details={"filename": filename, "size": len(content)}
        )


def build_report(payload: Dict[str, Any]) -> bytes:
    """
    Validate a result sent back by the caller and render its spreadsheet.

    Raises:
        ValidationError: If the payload is not a valid analysis result
        RenderError: If rendering fails
    """
    result = parse_result_payload(payload)
    return render_report(result)


def log_failure(exc: StatementAnalysisException, context: str) -> None:
    """Write the internal diagnostic for a mapped pipeline failure."""
    logger.error(f"{context} failed with {type(exc).__name__}: {exc.message}")
    if exc.details:
        logger.error(f"Details: {exc.details}")
