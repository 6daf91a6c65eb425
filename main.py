"""
Main entry point for the statement analysis service.

This module loads configuration, checks the Gemini credential and
starts the FastAPI server.
"""
import sys
from pathlib import Path

# Add project root to Python path for module imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from core.config import get_settings
from core.exceptions import ConfigurationError
from core.extraction import get_document_strategy
from core.logger import setup_logger
from llm.client import GeminiClientWrapper
from llm.prompts import PROMPT_VERSION

# Load environment variables from .env file
_env_file = PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    print("Warning: .env file not found. Using environment variables or defaults.")

logger = setup_logger(__name__)


def main():
    """Main application entry point."""
    try:
        # Load and validate configuration
        settings = get_settings()

        # Fail before serving if the credential or extraction mode is missing
        GeminiClientWrapper(settings)
        get_document_strategy(settings.extraction_mode)

        import uvicorn
        from app.api import app

        logger.info(f"Starting {settings.app_name}")
        logger.info(f"Gemini Model: {settings.gemini_model} (prompt {PROMPT_VERSION})")
        logger.info(f"Extraction Mode: {settings.extraction_mode}")
        logger.info(f"Log Level: {settings.log_level}")
        logger.info(f"Pipeline Timeout: {settings.pipeline_timeout:.0f}s")
        logger.info(f"Max Upload Size: {settings.max_upload_mb} MB")

        logger.info(f"Starting server on {settings.host}:{settings.port}")

        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
