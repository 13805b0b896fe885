"""
Batch extraction: runs each uploaded document through the model and parser.

Documents are processed one at a time, in upload order, to stay under the
model API rate limits. A document that fails is recorded and the batch moves
on; only a batch where every document failed is an error.
"""

import logging
from typing import Any, Protocol

from ..models import DocumentResult, DocumentStatus, UploadedDocument
from .ai import AIServiceError
from .document_service import DocumentConversionError
from .records import (
    ERROR_KEY,
    SOURCE_FILE_KEY,
    BatchEmptyError,
    ParseError,
    parse_model_response,
)

logger = logging.getLogger(__name__)

# Length of the error text kept in placeholder records
ERROR_PREVIEW_LENGTH = 120


class TextExtractor(Protocol):
    """Anything that turns an uploaded document into model text."""

    async def extract_text(self, document: UploadedDocument) -> str: ...


class BatchResult:
    """Records and per-document outcomes of one batch."""

    def __init__(self):
        self.records: list[dict[str, Any]] = []
        self.documents: list[DocumentResult] = []
        self.summaries: dict[str, str] = {}

    @property
    def successful(self) -> int:
        return sum(1 for d in self.documents if d.status == DocumentStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for d in self.documents if d.status == DocumentStatus.FAILED)


def error_record(filename: str, message: str) -> dict[str, Any]:
    """Placeholder row listing a failed document in the session."""
    preview = message if len(message) <= ERROR_PREVIEW_LENGTH else message[:ERROR_PREVIEW_LENGTH] + "..."
    return {ERROR_KEY: f"Falha na extração. {preview}", SOURCE_FILE_KEY: filename}


async def process_documents(
    documents: list[UploadedDocument],
    extractor: TextExtractor,
) -> BatchResult:
    """
    Extract records from every document, sequentially.

    Args:
        documents: Uploaded files in the order they were received.
        extractor: Model client used for each document.

    Returns:
        BatchResult with the records of every successful document, error
        placeholders for failed ones, and per-document results.

    Raises:
        BatchEmptyError: If no document produced a record.
    """
    result = BatchResult()
    failures: dict[str, str] = {}

    logger.info("Starting batch: %d document(s)", len(documents))

    for document in documents:
        filename = document.original_name
        try:
            text = await extractor.extract_text(document)
            parsed = parse_model_response(text, filename)
            if parsed.is_empty:
                raise ParseError("Model response did not contain any valid record")
        except (AIServiceError, DocumentConversionError, ParseError) as e:
            logger.warning("Extraction failed for %s: %s", filename, e)
            failures[filename] = str(e)
            result.records.append(error_record(filename, str(e)))
            result.documents.append(
                DocumentResult(
                    filename=filename,
                    status=DocumentStatus.FAILED,
                    error=str(e),
                )
            )
            continue

        result.records.extend(parsed.records)
        if parsed.summary:
            result.summaries[filename] = parsed.summary
        result.documents.append(
            DocumentResult(
                filename=filename,
                status=DocumentStatus.COMPLETED,
                record_count=len(parsed.records),
                summary=parsed.summary,
            )
        )

    logger.info(
        "Batch completed: %d successful, %d failed",
        result.successful,
        result.failed,
    )

    if documents and result.successful == 0:
        raise BatchEmptyError(failures)

    return result
