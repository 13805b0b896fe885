"""
Routers package for FastAPI endpoints.

Organized by domain:
- analyze: Upload and extraction
- export: Spreadsheet download
- sessions: Session summary and cleanup
"""

from . import analyze, export, sessions

__all__ = ["analyze", "export", "sessions"]
