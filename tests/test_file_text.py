"""Tests for file text extraction."""

import io

import fitz
import pytest
from docx import Document

from docintel.core.errors import ExtractionError
from docintel.core.file_text import (
    DOCX_MIME,
    PDF_MIME,
    TEXT_MIME,
    FileTextExtractor,
    decode_text_bytes,
    get_extension,
)

PAGE_TEXT = "Section 1. The gateway terminates TLS.\nSection 2. Requests are logged."


def _pdf(pages: list[str], **save_kwargs) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes(**save_kwargs)
    doc.close()
    return data


def _docx(paragraphs: list[str], table_rows: list[list[str]] | None = None) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


# =============================================================================
# Plain text
# =============================================================================


def test_extract_text_txt_utf8():
    """Test extracting text from a UTF-8 .txt file."""
    content = "Hello, world! This is a test file."

    result = FileTextExtractor().extract(content.encode("utf-8"), TEXT_MIME, "test.txt")

    assert result.text == content
    assert result.detected_encoding == "utf-8"
    assert result.page_count is None


def test_extract_text_txt_bom_and_latin1():
    """Test the BOM and Latin-1 fallbacks."""
    assert decode_text_bytes(b"\xef\xbb\xbfhello") == ("hello", "utf-8-sig")
    assert decode_text_bytes("café".encode("latin-1")) == ("café", "latin-1")


def test_extract_text_strips_null_bytes():
    result = FileTextExtractor().extract(b"abc\x00def", TEXT_MIME, "nulls.txt")
    assert result.text == "abcdef"


def test_extract_text_empty_txt():
    with pytest.raises(ExtractionError):
        FileTextExtractor().extract(b"  \n  ", TEXT_MIME, "empty.txt")


def test_extract_only_null_bytes():
    with pytest.raises(ExtractionError) as exc_info:
        FileTextExtractor().extract(b"\x00\x00", TEXT_MIME, "nulls.txt")
    assert "nulls.txt" in exc_info.value.message


def test_unsupported_type():
    with pytest.raises(ExtractionError):
        FileTextExtractor().extract(b"data", "image/png", "image.png")


def test_get_extension():
    assert get_extension("Report.PDF") == ".pdf"
    assert get_extension("archive.tar.gz") == ".gz"
    assert get_extension("README") == ""


# =============================================================================
# PDF
# =============================================================================


def test_extract_pdf():
    result = FileTextExtractor().extract(_pdf([PAGE_TEXT, PAGE_TEXT]), PDF_MIME, "manual.pdf")

    assert result.page_count == 2
    assert "gateway terminates TLS" in result.text


def test_extract_pdf_too_many_pages():
    """Test the page limit is enforced before reading text."""
    with pytest.raises(ExtractionError) as exc_info:
        FileTextExtractor(max_pdf_pages=2).extract(
            _pdf([PAGE_TEXT] * 3), PDF_MIME, "long.pdf"
        )
    assert "too many pages (3)" in exc_info.value.message


def test_extract_pdf_without_text_layer():
    """Test near-empty PDFs are treated as scanned images."""
    with pytest.raises(ExtractionError) as exc_info:
        FileTextExtractor().extract(_pdf(["Hi"]), PDF_MIME, "scan.pdf")
    assert "OCR is not supported" in exc_info.value.message


def test_extract_pdf_encrypted():
    data = _pdf(
        [PAGE_TEXT],
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="user",
    )

    with pytest.raises(ExtractionError) as exc_info:
        FileTextExtractor().extract(data, PDF_MIME, "locked.pdf")
    assert "password" in exc_info.value.message


def test_extract_pdf_corrupted():
    with pytest.raises(ExtractionError):
        FileTextExtractor().extract(b"%PDF-1.4 garbage", PDF_MIME, "broken.pdf")


# =============================================================================
# DOCX
# =============================================================================


def test_extract_docx_paragraphs_and_tables():
    data = _docx(["Overview", "", "Details"], table_rows=[["Key", "Value"], ["", ""]])

    result = FileTextExtractor().extract(data, DOCX_MIME, "doc.docx")

    assert result.text == "Overview\n\nDetails\n\nKey | Value"


def test_extract_docx_empty():
    with pytest.raises(ExtractionError) as exc_info:
        FileTextExtractor().extract(_docx([]), DOCX_MIME, "empty.docx")
    assert "empty" in exc_info.value.message


def test_extract_docx_corrupted():
    with pytest.raises(ExtractionError):
        FileTextExtractor().extract(b"not a zip file", DOCX_MIME, "broken.docx")
