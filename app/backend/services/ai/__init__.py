"""
AI service package for document data extraction.

- extraction: prompt, OpenAI request and rate-limit retry
- exceptions: errors raised by the model client

The AIService class ties these to the document service and settings.
"""

import logging

from ...config import get_settings
from ...models import UploadedDocument
from ..document_service import DocumentService, get_document_service
from .exceptions import AIServiceError, RateLimitExceededError
from .extraction import (
    MOCK_RESPONSE,
    call_with_retry,
    is_rate_limit_error,
    request_extraction,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "RateLimitExceededError",
    "call_with_retry",
    "get_ai_service",
    "is_rate_limit_error",
]


class AIService:
    """
    Service for AI-powered document extraction.

    Uses an OpenAI vision model to read document pages and answer with a
    delimited table of the extracted fields.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        use_mock: bool = False,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        document_service: DocumentService | None = None,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key. If None, reads from config/environment.
            model: OpenAI model to use (must support vision).
            use_mock: If True, return mock data instead of calling OpenAI.
            max_retries: Attempts per document when rate-limited.
            retry_base_delay: Base delay in seconds for exponential backoff.
            document_service: Converter for uploads; defaults to the singleton.
        """
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.openai_model
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.retry_base_delay
        )
        self.document_service = document_service or get_document_service()
        self.use_mock = use_mock or not self.api_key
        self._client = None

        if self.use_mock:
            logger.warning(
                "AI Service running in MOCK MODE. Set OPENAI_API_KEY in .env for real extraction."
            )

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import OpenAI

            # Retries are handled here with jitter, not by the SDK
            self._client = OpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def extract_text(self, document: UploadedDocument) -> str:
        """
        Run extraction on one uploaded document.

        Args:
            document: The uploaded file.

        Returns:
            The model's raw answer (possibly empty).

        Raises:
            DocumentConversionError: If the upload cannot be read.
            AIServiceError: If the model call fails.
        """
        self.document_service.validate(document)

        if self.use_mock:
            logger.info("Extracting data (MOCK MODE) for: %s", document.original_name)
            return MOCK_RESPONSE

        images = self.document_service.to_images(document)
        base64_images = [self.document_service.image_to_base64(image) for image in images]
        return await request_extraction(
            base64_images,
            document.original_name,
            client=self.client,
            model=self.model,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
