"""
Router for session inspection and cleanup.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..models import AggregateTotals, SessionSummaryResponse
from ..services.records import aggregate_by_identity
from ..services.session_store import ExtractionSession, InMemorySessionStore, get_session_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _get_session_or_404(store: InMemorySessionStore, session_id: str) -> ExtractionSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} expired or not found",
        )
    return session


@router.get("/{session_id}/summary", response_model=SessionSummaryResponse)
async def get_session_summary(
    session_id: str,
    store: InMemorySessionStore = Depends(get_session_store),
) -> SessionSummaryResponse:
    """Hour totals per collaborator plus the model summaries of a session."""
    session = _get_session_or_404(store, session_id)

    # Recomputed on every call
    aggregate = aggregate_by_identity(session.records)

    return SessionSummaryResponse(
        session_id=session_id,
        aggregate={
            identity: AggregateTotals.model_validate(totals)
            for identity, totals in aggregate.items()
        },
        summaries=session.summaries,
        record_count=len(session.records),
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    store: InMemorySessionStore = Depends(get_session_store),
) -> Response:
    """Discard a session without exporting it."""
    if not store.delete(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} expired or not found",
        )
    logger.info("Deleted session %s", session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
