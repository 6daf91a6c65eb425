"""
FastAPI routes for statement upload and report download.
Thin HTTP layer over StatementService.
"""
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response

from core.config import get_settings
from core.exceptions import StatementAnalysisException
from core.exporters import REPORT_FILENAME, XLSX_MEDIA_TYPE
from core.logger import setup_logger
from services.statement_service import (
    GENERIC_ERROR_MESSAGE,
    StatementService,
    build_report,
    describe_error,
    log_failure,
    validate_upload,
)

logger = setup_logger(__name__)
settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title="GastosUY",
    description="Categorize bank statement PDFs and export them to Excel",
    version="1.0.0"
)

# Created on first analysis so a missing API key surfaces as a mapped error
_service: Optional[StatementService] = None


def get_service() -> StatementService:
    """Get or create the statement service."""
    global _service
    if _service is None:
        _service = StatementService(settings)
    return _service


def _raise_http(exc: StatementAnalysisException, context: str) -> None:
    log_failure(exc, context)
    status_code, message = describe_error(exc)
    raise HTTPException(status_code=status_code, detail=message)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "gastosuy",
        "version": "1.0.0"
    }


@app.post("/api/analyze")
async def analyze_statement(pdf: Optional[UploadFile] = File(None)):
    """
    Analyse an uploaded statement PDF.

    Args:
        pdf: Statement file (multipart field "pdf")

    Returns:
        Canonical analysis result as JSON
    """
    try:
        content = await pdf.read() if pdf is not None else None
        filename = pdf.filename if pdf is not None else None
        content_type = pdf.content_type if pdf is not None else None
        logger.info(f"Received upload: {filename} ({content_type}, {len(content or b'')} bytes)")

        validate_upload(filename, content_type, content, settings)
        result = await get_service().analyze(content)

    except StatementAnalysisException as e:
        _raise_http(e, "Analysis")

    except Exception as e:
        logger.error(f"Unexpected analysis failure: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_MESSAGE)

    finally:
        if pdf is not None:
            await pdf.close()

    return result.model_dump(mode="json")


@app.post("/api/download")
async def download_report(payload: Any = Body(None)):
    """
    Render the spreadsheet for a previously returned analysis result.

    Args:
        payload: Analysis result JSON

    Returns:
        .xlsx file as an attachment
    """
    try:
        content = build_report(payload)

    except StatementAnalysisException as e:
        _raise_http(e, "Report download")

    except Exception as e:
        logger.error(f"Unexpected report failure: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error generando el archivo Excel.")

    headers: Dict[str, str] = {
        "Content-Disposition": f'attachment; filename="{REPORT_FILENAME}"'
    }
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=headers)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
