"""
Router for the analyze endpoint.

Handles:
- Multi-file upload (PDFs and images)
- Sequential extraction and parsing
- Session creation for the export step
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..models import AnalyzeResponse, UploadedDocument
from ..services.ai import AIService, get_ai_service
from ..services.batch_service import process_documents
from ..services.document_service import is_supported, resolve_mime_type
from ..services.records import collect_keys, group_keys
from ..services.session_store import ExtractionSession, InMemorySessionStore, get_session_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])


async def read_uploads(files: list[UploadFile]) -> list[UploadedDocument]:
    """
    Read and validate uploaded files.

    Raises:
        HTTPException: 400 for missing names, unsupported types or empty files.
    """
    documents: list[UploadedDocument] = []
    for file in files:
        try:
            if not file.filename:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="All files must have filenames",
                )

            mime_type = resolve_mime_type(file.filename, file.content_type)
            if not is_supported(mime_type):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Only PDF or image files accepted: {file.filename}",
                )

            content = await file.read()
            if not content:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Empty file: {file.filename}",
                )

            documents.append(
                UploadedDocument(
                    original_name=file.filename,
                    mime_type=mime_type,
                    content=content,
                )
            )
        finally:
            await file.close()
    return documents


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    files: Annotated[list[UploadFile], File(description="PDF or image files to extract")],
    ai_service: AIService = Depends(get_ai_service),
    store: InMemorySessionStore = Depends(get_session_store),
) -> AnalyzeResponse:
    """
    Extract every uploaded document and open an export session.

    Documents that fail are listed with their error; the request only fails
    when no document yields a record.
    """
    documents = await read_uploads(files)
    logger.info("Analyzing %d document(s)", len(documents))

    store.expire()

    # BatchEmptyError is turned into a 422 by the app-level handler
    batch = await process_documents(documents, ai_service)

    raw_keys = collect_keys(batch.records)
    session = ExtractionSession(
        records=batch.records,
        group_keys=group_keys(raw_keys),
        summaries=batch.summaries,
        documents=batch.documents,
    )
    session_id = uuid.uuid4().hex
    store.put(session_id, session)

    return AnalyzeResponse(
        session_id=session_id,
        available_keys=session.group_keys,
        raw_keys=raw_keys,
        documents=batch.documents,
        successful_documents=batch.successful,
        failed_documents=batch.failed,
    )
