"""
Document Extraction Backend Application.

A FastAPI service that extracts structured data from PDFs and images using
AI (OpenAI GPT-4.1) and exports it as a consolidated spreadsheet.
"""

__version__ = "1.0.0"
