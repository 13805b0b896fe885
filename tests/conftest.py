"""Pytest configuration and fixtures."""

import io
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.backend.main import app
from app.backend.models import UploadedDocument
from app.backend.services.ai import AIService, get_ai_service
from app.backend.services.session_store import InMemorySessionStore, get_session_store


@pytest.fixture
def session_store() -> InMemorySessionStore:
    """A fresh session store per test."""
    return InMemorySessionStore(ttl_seconds=60)


@pytest.fixture
def client(session_store: InMemorySessionStore) -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.

    The AI service is forced into mock mode so no request leaves the machine.
    """
    app.dependency_overrides[get_ai_service] = lambda: AIService(use_mock=True)
    app.dependency_overrides[get_session_store] = lambda: session_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_png_bytes() -> bytes:
    """A small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (60, 40), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_png_document(sample_png_bytes: bytes) -> UploadedDocument:
    return UploadedDocument(
        original_name="ponto.png",
        mime_type="image/png",
        content=sample_png_bytes,
    )


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"


@pytest.fixture
def timesheet_csv() -> str:
    """Semicolon table where the second row lost the collaborator name."""
    return (
        "Nome;Data;Entrada_1;Saida_1\n"
        "Ana;01/01/2024;08:00;17:00\n"
        "N/A;02/01/2024;08:05;17:10\n"
    )


@pytest.fixture
def fenced_json_response() -> str:
    """Markdown-fenced JSON array ending with a summary object."""
    return (
        "```json\n"
        '[{"nome":"Bob","total_horas_trabalhadas":8},'
        '{"resumo_executivo_mensal":"ok"}]\n'
        "```"
    )
