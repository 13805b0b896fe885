"""
Services package for the document extraction application.

Contains:
- ai: OpenAI client for document extraction
- document_service: upload validation and page-image conversion
- batch_service: sequential per-document extraction
- records: parsing, grouping and aggregation of extracted records
- session_store: sessions between analyze and export
- spreadsheet_service: .xlsx rendering
"""

from .ai import AIService
from .document_service import DocumentService
from .session_store import InMemorySessionStore
from .spreadsheet_service import SpreadsheetService

__all__ = ["AIService", "DocumentService", "InMemorySessionStore", "SpreadsheetService"]
