"""
Uploaded document handling using pdf2image (poppler) and Pillow.

Validates uploads and turns PDFs and images into page images the model can
read.
"""

import base64
import io
import logging
import mimetypes

from PIL import Image, UnidentifiedImageError

from ..models import UploadedDocument

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})
SUPPORTED_MIME_TYPES = IMAGE_MIME_TYPES | {PDF_MIME_TYPE}


class DocumentConversionError(Exception):
    """Raised when an uploaded document cannot be read."""

    pass


def resolve_mime_type(filename: str, declared: str | None) -> str:
    """
    Decide the content type of an upload.

    Browsers often send ``application/octet-stream``; in that case the type is
    guessed from the file extension.
    """
    declared = (declared or "").split(";")[0].strip().lower()
    if declared in SUPPORTED_MIME_TYPES:
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    if guessed == "image/jpg":
        guessed = "image/jpeg"
    return guessed or declared or "application/octet-stream"


def is_supported(mime_type: str) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


class DocumentService:
    """
    Service for turning uploads into page images.

    Args:
        dpi: Resolution for PDF to image conversion. Higher = better quality but slower.
        max_pages: Pages sent to the model per document.
        max_image_size: Longest side, in pixels, of images sent to the model.
    """

    def __init__(self, dpi: int = 200, max_pages: int = 10, max_image_size: int = 2048):
        self.dpi = dpi
        self.max_pages = max_pages
        self.max_image_size = max_image_size

    def validate(self, document: UploadedDocument) -> None:
        """
        Check that a document is non-empty, supported and well-formed.

        Raises:
            DocumentConversionError: On empty, unsupported or mislabeled content.
        """
        if not document.content:
            raise DocumentConversionError(f"Empty file: {document.original_name}")

        if not is_supported(document.mime_type):
            raise DocumentConversionError(
                f"Unsupported file type '{document.mime_type}' for {document.original_name}"
            )

        # Validate PDF magic bytes
        if document.mime_type == PDF_MIME_TYPE and document.content[:4] != b"%PDF":
            raise DocumentConversionError(
                "Invalid PDF file: does not start with PDF header"
            )

    def to_images(self, document: UploadedDocument) -> list[Image.Image]:
        """
        Convert a document into page images.

        Raises:
            DocumentConversionError: If the document cannot be converted.
        """
        self.validate(document)
        if document.mime_type == PDF_MIME_TYPE:
            return self._pdf_to_images(document.content)
        return [self._open_image(document.content)]

    def _open_image(self, content: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise DocumentConversionError(f"Invalid or corrupted image: {e}") from e
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        return image

    def _pdf_to_images(self, content: bytes) -> list[Image.Image]:
        from pdf2image import convert_from_bytes
        from pdf2image.exceptions import (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFSyntaxError,
        )

        try:
            logger.info("Converting PDF to images (dpi=%d, max_pages=%d)", self.dpi, self.max_pages)
            images = convert_from_bytes(
                content,
                dpi=self.dpi,
                fmt="png",
                first_page=1,
                last_page=self.max_pages,
                thread_count=2,
            )
        except PDFInfoNotInstalledError as e:
            logger.error("Poppler not installed: %s", e)
            raise DocumentConversionError(
                "Poppler not installed. Install poppler-utils: "
                "brew install poppler (macOS) or apt-get install poppler-utils (Linux)"
            ) from e
        except PDFPageCountError as e:
            raise DocumentConversionError(f"Could not determine PDF page count: {e}") from e
        except PDFSyntaxError as e:
            raise DocumentConversionError(f"Invalid or corrupted PDF file: {e}") from e
        except Exception as e:
            logger.exception("Unexpected error during PDF conversion")
            raise DocumentConversionError(f"PDF conversion failed: {e}") from e

        if not images:
            raise DocumentConversionError("No pages found in PDF")

        logger.info("Converted %d page(s)", len(images))
        return images

    def image_to_base64(self, image: Image.Image) -> str:
        """Encode an image as base64 PNG, downscaling very large pages."""
        if max(image.size) > self.max_image_size:
            ratio = self.max_image_size / max(image.size)
            new_size = (int(image.size[0] * ratio), int(image.size[1] * ratio))
            image = image.resize(new_size, Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG", optimize=True)
        return base64.b64encode(buffer.getvalue()).decode("utf-8")


# Singleton instance for convenience
_document_service: DocumentService | None = None


def get_document_service() -> DocumentService:
    """Get or create the document service singleton."""
    global _document_service
    if _document_service is None:
        from ..config import get_settings

        settings = get_settings()
        _document_service = DocumentService(
            dpi=settings.pdf_dpi,
            max_pages=settings.max_pages,
            max_image_size=settings.max_image_size,
        )
    return _document_service
