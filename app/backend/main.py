"""
FastAPI application for the document extraction service.

Provides endpoints for:
- Uploading PDFs/images and extracting their data with AI
- Choosing the field groups to keep
- Exporting the consolidated spreadsheet
- Inspecting per-collaborator hour totals
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .models import HealthResponse
from .routers import analyze, export, sessions
from .services.ai import AIServiceError, get_ai_service
from .services.document_service import DocumentConversionError, get_document_service
from .services.records import BatchEmptyError
from .services.session_store import get_session_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Document Extraction Service...")
    # Initialize services on startup
    get_document_service()
    get_ai_service()
    get_session_store()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down Document Extraction Service...")


# Create FastAPI application
app = FastAPI(
    title="Document Extraction API",
    description="AI data extraction from PDFs and images into spreadsheets",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(status="healthy", message="Document Extraction API is running")


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(analyze.router)
app.include_router(export.router)
app.include_router(sessions.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(BatchEmptyError)
async def batch_empty_error_handler(request, exc: BatchEmptyError):
    """Handle batches where no document produced records."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "failures": exc.failures},
    )


@app.exception_handler(DocumentConversionError)
async def document_conversion_error_handler(request, exc: DocumentConversionError):
    """Handle unreadable documents."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request, exc: AIServiceError):
    """Handle AI service errors."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )
