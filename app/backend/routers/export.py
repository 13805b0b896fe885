"""
Router for spreadsheet export.

Handles:
- Expanding the selected field groups into raw columns
- Rendering and downloading the .xlsx report
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..models import ExportRequest
from ..services.records import build_export_table
from ..services.session_store import InMemorySessionStore, get_session_store
from ..services.spreadsheet_service import SpreadsheetService, get_spreadsheet_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["export"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.post("/export-excel")
async def export_excel(
    request: ExportRequest,
    store: InMemorySessionStore = Depends(get_session_store),
    spreadsheet_service: SpreadsheetService = Depends(get_spreadsheet_service),
) -> Response:
    """
    Render the selected fields of a session as a spreadsheet download.

    The session is deleted once the file is built.
    """
    if not request.selected_keys:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields selected for export",
        )

    session = store.get(request.session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {request.session_id} expired or not found",
        )

    headers, rows = build_export_table(session.records, request.selected_keys)
    logger.info(
        "Exporting session %s: %d group(s) -> %d column(s), %d row(s)",
        request.session_id,
        len(request.selected_keys),
        len(headers),
        len(rows),
    )

    content = spreadsheet_service.render(
        headers,
        rows,
        aggregate=session.aggregate,
        summaries=session.summaries,
    )
    store.delete(request.session_id)

    filename = f"relatorio_curado_{request.session_id}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
