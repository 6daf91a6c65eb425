"""
Statement categorization through the external language-model service.
"""
from core.extraction import StatementPayload
from core.logger import setup_logger
from llm.client import GeminiClientWrapper, clean_response_text
from llm.prompts import PROMPT_VERSION, build_request_parts

logger = setup_logger(__name__)


def categorize_statement(
    client: GeminiClientWrapper,
    payload: StatementPayload,
    timeout: float
) -> str:
    """
    Ask the categorization service to classify a statement.

    Args:
        client: Configured Gemini client
        payload: Extracted text or raw PDF
        timeout: Seconds left for the service call

    Returns:
        Response text with code fences and surrounding prose removed

    Raises:
        ServiceUnavailableError: If the service cannot be reached
        MalformedResponseError: If the service returns no text
    """
    parts = build_request_parts(payload)
    mode = "pdf" if payload.is_passthrough else "text"
    logger.info(f"Requesting categorization (prompt {PROMPT_VERSION}, mode={mode}, pages={payload.page_count})")

    raw_text = client.generate(parts, timeout=timeout)
    cleaned = clean_response_text(raw_text)

    logger.info(f"Received {len(raw_text)} characters ({len(cleaned)} after cleanup)")
    return cleaned
