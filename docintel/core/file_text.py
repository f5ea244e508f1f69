"""Text extraction from uploaded PDF, DOCX and plain-text files."""

import io
from dataclasses import dataclass, field

from docintel.core.errors import ExtractionError
from docintel.core.logging import get_logger

logger = get_logger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

# MIME type -> accepted file extensions
ALLOWED_TYPES: dict[str, tuple[str, ...]] = {
    PDF_MIME: (".pdf",),
    DOCX_MIME: (".docx",),
    TEXT_MIME: (".txt",),
}

# Below this many characters a PDF is treated as scanned or image-only
MIN_PDF_TEXT_CHARS = 50


@dataclass
class ExtractedText:
    """Result of text extraction from a file."""

    text: str
    page_count: int | None = None
    detected_encoding: str | None = None
    warnings: list[str] = field(default_factory=list)


def get_extension(filename: str) -> str:
    """Extract lowercase file extension from filename."""
    if "." in filename:
        return "." + filename.rsplit(".", 1)[-1].lower()
    return ""


def decode_text_bytes(raw_bytes: bytes) -> tuple[str, str]:
    """
    Decode bytes using a UTF-8-BOM, UTF-8, Latin-1 fallback chain.

    Returns:
        Tuple of (decoded_text, encoding_name)
    """
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        return raw_bytes.decode("utf-8-sig"), "utf-8-sig"

    try:
        return raw_bytes.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        # Latin-1 maps every byte, so this cannot fail
        return raw_bytes.decode("latin-1"), "latin-1"


class FileTextExtractor:
    """Extracts plain text, failing descriptively instead of returning nothing."""

    def __init__(self, max_pdf_pages: int = 50):
        self.max_pdf_pages = max_pdf_pages

    def extract(self, file_bytes: bytes, mime_type: str, file_name: str) -> ExtractedText:
        """
        Extract text from an uploaded file.

        Args:
            file_bytes: Raw file content
            mime_type: Declared MIME type
            file_name: Original file name (used in messages)

        Returns:
            ExtractedText with null bytes removed

        Raises:
            ExtractionError: If the file is unreadable or contains no text
        """
        if mime_type == PDF_MIME:
            result = self._extract_pdf(file_bytes)
        elif mime_type == DOCX_MIME:
            result = self._extract_docx(file_bytes)
        elif mime_type == TEXT_MIME:
            result = self._extract_txt(file_bytes)
        else:
            raise ExtractionError(f"Unsupported file type: {mime_type}")

        result.text = result.text.replace("\x00", "")
        if not result.text.strip():
            raise ExtractionError(f"No text content found in {file_name}")

        logger.info(
            f"Extracted {len(result.text)} chars from {file_name}",
            extra={"mime_type": mime_type, "page_count": result.page_count},
        )
        return result

    def _extract_pdf(self, file_bytes: bytes) -> ExtractedText:
        import fitz  # PyMuPDF, heavy; loaded on first PDF

        try:
            doc = fitz.open(stream=io.BytesIO(file_bytes), filetype="pdf")
        except Exception as e:
            raise ExtractionError(
                f"Unable to open PDF: {e}. The file may be corrupted."
            ) from e

        with doc:
            if doc.needs_pass:
                raise ExtractionError(
                    "PDF is encrypted or password-protected. "
                    "Remove the password and upload it again."
                )

            page_count = doc.page_count
            if page_count > self.max_pdf_pages:
                raise ExtractionError(
                    f"PDF has too many pages ({page_count}). "
                    f"Maximum is {self.max_pdf_pages} pages. "
                    "Please split your document or upload key sections only."
                )

            pages = [page.get_text("text") for page in doc]

        text = "\n\n".join(pages)
        if len(text.strip()) <= MIN_PDF_TEXT_CHARS:
            raise ExtractionError(
                "Unable to extract text from this PDF. It may be scanned images "
                "(OCR is not supported). Try a text-based PDF or a .txt/.docx file instead."
            )

        return ExtractedText(text=text, page_count=page_count)

    def _extract_docx(self, file_bytes: bytes) -> ExtractedText:
        from docx import Document

        try:
            doc = Document(io.BytesIO(file_bytes))
        except Exception as e:
            raise ExtractionError(
                f"Failed to parse Word document: {e}. "
                "The file may be corrupted or in an unsupported format."
            ) from e

        parts = [para.text for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))

        if not parts:
            raise ExtractionError(
                "Document appears to be empty. Please ensure the file contains text content."
            )

        return ExtractedText(text="\n\n".join(parts))

    def _extract_txt(self, file_bytes: bytes) -> ExtractedText:
        text, encoding = decode_text_bytes(file_bytes)
        if not text.strip():
            raise ExtractionError("Text file is empty. Please upload a file with content.")
        return ExtractedText(text=text, detected_encoding=encoding)
