"""
Pydantic models for the document extraction API.

Defines the uploaded document contract, per-document outcomes and the
request/response bodies of the analyze, export and session endpoints.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentStatus(str, Enum):
    """Outcome of processing a single document."""

    COMPLETED = "completed"
    FAILED = "failed"


class UploadedDocument(BaseModel):
    """
    A file handed over by the upload layer.

    The content is read into memory; nothing assumes the upload still exists
    on disk once the request is done.
    """

    original_name: str = Field(..., min_length=1, description="Original filename")
    mime_type: str = Field(..., description="Declared content type")
    content: bytes = Field(..., description="Raw file content")


class DocumentResult(BaseModel):
    """Per-document entry in the analyze response."""

    filename: str = Field(..., description="Original filename")
    status: DocumentStatus = Field(..., description="Processing outcome")
    record_count: int = Field(default=0, ge=0, description="Records extracted")
    error: str | None = Field(default=None, description="Error message (if failed)")
    summary: str | None = Field(
        default=None,
        description="Summary text the model appended, if any",
    )


class AnalyzeResponse(BaseModel):
    """Response model for the analyze endpoint."""

    session_id: str = Field(..., description="Identifier to use for export")
    available_keys: list[str] = Field(
        default_factory=list,
        description="Canonical field groups offered for selection",
    )
    raw_keys: list[str] = Field(
        default_factory=list,
        description="Every raw field name found, in first-seen order",
    )
    documents: list[DocumentResult] = Field(default_factory=list)
    successful_documents: int = Field(..., ge=0)
    failed_documents: int = Field(..., ge=0)


class ExportRequest(BaseModel):
    """Request model for the spreadsheet export."""

    session_id: str = Field(..., min_length=1, description="Session from analyze")
    selected_keys: list[str] = Field(
        default_factory=list,
        description="Canonical field groups (or raw names) to export",
        examples=[["nome", "data", "entrada", "total_horas_trabalhadas"]],
    )

    @field_validator("selected_keys")
    @classmethod
    def drop_blank_keys(cls, v: list[str]) -> list[str]:
        """Ignore blank entries the UI may send."""
        return [key.strip() for key in v if isinstance(key, str) and key.strip()]


class AggregateTotals(BaseModel):
    """Formatted hour totals for one identity."""

    model_config = ConfigDict(populate_by_name=True)

    total_horas: str = Field(..., alias="totalHoras", examples=["160.00"])
    total_extras: str = Field(..., alias="totalExtras", examples=["12.50"])


class SessionSummaryResponse(BaseModel):
    """Aggregate view of a stored session."""

    session_id: str
    aggregate: dict[str, AggregateTotals] = Field(default_factory=dict)
    summaries: dict[str, str] = Field(
        default_factory=dict,
        description="Model summaries keyed by source file",
    )
    record_count: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")
