"""
Gemini client using direct REST API calls.
One generateContent round trip per statement; no streaming, no retries.
"""
import json
import re
from typing import Any, Dict, List, Optional

import requests

from core.config import Settings, get_settings
from core.exceptions import ConfigurationError, MalformedResponseError, ServiceUnavailableError
from core.logger import setup_logger

logger = setup_logger(__name__)

_FENCED_BLOCK = re.compile(r"```[ \t]*(?:[A-Za-z0-9_+-]+)?[ \t]*\r?\n?(.*?)```", re.DOTALL)
_OPENING_FENCE = re.compile(r"^```[ \t]*(?:[A-Za-z0-9_+-]+)?[ \t]*\r?\n?")


class GeminiClientWrapper:
    """Wrapper for the Gemini generateContent REST endpoint."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize REST API client.

        Raises:
            ConfigurationError: If no API key is configured
        """
        settings = settings or get_settings()
        if not settings.gemini_api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY environment variable not set",
                details={"required_key": "GEMINI_API_KEY"}
            )

        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self.temperature = settings.gemini_temperature
        self.endpoint = f"{settings.gemini_api_url.rstrip('/')}/models/{self.model}:generateContent"

        logger.info(f"Initialized Gemini REST client with model: {self.model}")

    def generate(self, parts: List[Dict[str, Any]], timeout: float) -> str:
        """
        Send one generateContent request and return the response text.

        Args:
            parts: Content parts (instruction plus statement text or PDF)
            timeout: Seconds to wait for the service

        Returns:
            Raw text of the first candidate

        Raises:
            ServiceUnavailableError: On timeout, connection failure or non-2xx status
            MalformedResponseError: If the response carries no usable text
        """
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": self.temperature,
                "responseMimeType": "application/json",
            },
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            with requests.Session() as session:
                response = session.post(
                    self.endpoint,
                    headers=headers,
                    data=json.dumps(payload),
                    timeout=timeout
                )
                response.raise_for_status()
                completion_data = response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f"Gemini request timeout after {timeout:.1f}s: {e}")
            raise ServiceUnavailableError(
                f"Categorization service timed out after {timeout:.0f}s",
                details={"model": self.model, "timeout": timeout}
            )

        except requests.exceptions.HTTPError as e:
            status_code = getattr(e.response, "status_code", None)
            logger.error(f"Gemini HTTP error: {status_code}")
            raise ServiceUnavailableError(
                f"Categorization service returned HTTP {status_code}",
                details={"model": self.model, "status_code": status_code}
            )

        except requests.exceptions.JSONDecodeError as e:
            logger.error(f"Gemini response envelope is not JSON: {e}")
            raise MalformedResponseError(
                "Categorization service returned a non-JSON envelope",
                details={"error": str(e)}
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise ServiceUnavailableError(
                "Failed to connect to categorization service",
                details={"model": self.model, "error": str(e)}
            )

        return extract_response_text(completion_data)


def extract_response_text(completion_data: Dict[str, Any]) -> str:
    """
    Pull the generated text out of a generateContent response.

    Raises:
        MalformedResponseError: If there is no candidate text (e.g. blocked prompt)
    """
    if not isinstance(completion_data, dict):
        raise MalformedResponseError("Unexpected response structure from categorization service")

    candidates = completion_data.get("candidates") or []
    if not candidates:
        feedback = completion_data.get("promptFeedback") or {}
        raise MalformedResponseError(
            "Categorization service returned no candidates",
            details={"block_reason": feedback.get("blockReason")}
        )

    candidate = candidates[0] if isinstance(candidates[0], dict) else {}
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(
        part.get("text", "") for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
    if not text.strip():
        raise MalformedResponseError(
            "Categorization service returned an empty answer",
            details={"finish_reason": candidate.get("finishReason")}
        )

    usage = completion_data.get("usageMetadata")
    if usage:
        logger.debug(
            f"Token usage - Input: {usage.get('promptTokenCount', 'N/A')}, "
            f"Output: {usage.get('candidatesTokenCount', 'N/A')}"
        )

    return text


def clean_response_text(text: str) -> str:
    """
    Minimal syntactic cleanup before structural validation.

    Takes the content of a triple-backtick fence (with optional language
    tag) wherever it appears, strips an unterminated leading fence, and
    otherwise trims prose around a JSON object.

    Args:
        text: Raw response text

    Returns:
        Text expected to hold a single JSON document
    """
    cleaned = (text or "").strip()

    match = _FENCED_BLOCK.search(cleaned)
    if match:
        return match.group(1).strip()

    if cleaned.startswith("```"):
        cleaned = _OPENING_FENCE.sub("", cleaned, count=1).strip()

    if not (cleaned.startswith(("{", "[")) and cleaned.endswith(("}", "]"))):
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end > start:
            cleaned = cleaned[start:end + 1]

    return cleaned

