"""Tests for the document extractor."""

import pytest

from knowledge_base.ingestion.extractors import (
    DOCX,
    MSWORD,
    PDF,
    PDF_UNSUPPORTED_MESSAGE,
    TEXT_PLAIN,
    DocumentExtractor,
    media_type_for_filename,
)
from knowledge_base.ingestion.models import ErrorKind, ExtractionFailure, ExtractionSuccess, UploadedFile


@pytest.fixture
def extractor():
    return DocumentExtractor(max_file_size=1024 * 1024)


# =============================================================================
# PLAIN TEXT
# =============================================================================

def test_plain_text_is_decoded_as_utf8(extractor, text_file):
    result = extractor.extract(text_file("notes.txt", "Café opening hours"))

    assert isinstance(result, ExtractionSuccess)
    assert result.text == "Café opening hours"
    assert result.source_name == "notes.txt"


def test_plain_text_byte_order_mark_is_dropped(extractor):
    content = "\ufeffhello".encode("utf-8")
    result = extractor.extract(UploadedFile("bom.txt", content, TEXT_PLAIN))

    assert result.text == "hello"


def test_invalid_utf8_is_an_encoding_failure(extractor):
    result = extractor.extract(UploadedFile("bad.txt", b"\xff\xfe\xfa\x80", TEXT_PLAIN))

    assert isinstance(result, ExtractionFailure)
    assert result.reason is ErrorKind.INVALID_ENCODING
    assert result.source_name == "bad.txt"


def test_declared_charset_is_honored(extractor):
    upload = UploadedFile("latin.txt", "café".encode("latin-1"), "text/plain; charset=ISO-8859-1")

    assert extractor.extract(upload).text == "café"


def test_unknown_charset_falls_back_to_utf8(extractor):
    upload = UploadedFile("x.txt", b"plain", "text/plain; charset=not-a-codec")

    assert extractor.extract(upload).text == "plain"


@pytest.mark.parametrize("charset", ["base64", "hex", "zlib", "rot13"])
def test_non_text_charset_falls_back_to_utf8(extractor, charset):
    upload = UploadedFile("a.txt", b"hello", f"text/plain; charset={charset}")

    result = extractor.extract(upload)

    assert isinstance(result, ExtractionSuccess)
    assert result.text == "hello"


# =============================================================================
# WORD DOCUMENTS
# =============================================================================

def test_docx_paragraphs_are_joined_with_blank_lines(extractor, word_file):
    result = extractor.extract(word_file("guide.docx", ["First paragraph", "", "Second paragraph"]))

    assert isinstance(result, ExtractionSuccess)
    assert result.text == "First paragraph\n\nSecond paragraph"


def test_docx_table_text_follows_body_order(extractor, docx_bytes):
    content = docx_bytes(["Intro"], table_rows=[["A", "B"], ["C", "D"]])
    result = extractor.extract(UploadedFile("table.docx", content, DOCX))

    assert result.text == "Intro\n\nA\n\nB\n\nC\n\nD"


def test_msword_type_accepts_open_xml_content(extractor, word_file):
    result = extractor.extract(word_file("legacy.doc", ["Still readable"], media_type=MSWORD))

    assert isinstance(result, ExtractionSuccess)
    assert result.text == "Still readable"


def test_corrupt_docx_is_an_extraction_error(extractor, corrupt_word_file):
    result = extractor.extract(corrupt_word_file())

    assert isinstance(result, ExtractionFailure)
    assert result.reason is ErrorKind.EXTRACTION_ERROR
    assert result.source_name == "broken.docx"


def test_docx_without_text_is_an_extraction_error(extractor, word_file):
    result = extractor.extract(word_file("empty.docx", []))

    assert result.reason is ErrorKind.EXTRACTION_ERROR
    assert "No text found" in result.message


# =============================================================================
# REJECTIONS
# =============================================================================

def test_pdf_is_rejected_even_with_valid_bytes(extractor):
    content = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer\n%%EOF"
    result = extractor.extract(UploadedFile("report.pdf", content, PDF))

    assert isinstance(result, ExtractionFailure)
    assert result.reason is ErrorKind.UNSUPPORTED_FORMAT
    assert result.message == PDF_UNSUPPORTED_MESSAGE


def test_pdf_is_rejected_before_size_check():
    extractor = DocumentExtractor(max_file_size=10)
    result = extractor.extract(UploadedFile("big.pdf", b"x" * 100, PDF))

    assert result.reason is ErrorKind.UNSUPPORTED_FORMAT


def test_unknown_media_type_is_unsupported(extractor):
    result = extractor.extract(UploadedFile("photo.png", b"\x89PNG", "image/png"))

    assert result.reason is ErrorKind.UNSUPPORTED_FORMAT
    assert "image/png" in result.message


def test_oversized_file_is_rejected():
    extractor = DocumentExtractor(max_file_size=10)
    result = extractor.extract(UploadedFile("long.txt", b"x" * 11, TEXT_PLAIN))

    assert result.reason is ErrorKind.TOO_LARGE


def test_declared_size_counts_even_when_content_was_not_read():
    extractor = DocumentExtractor(max_file_size=10)
    result = extractor.extract(UploadedFile("long.txt", b"", TEXT_PLAIN, size=5000))

    assert result.reason is ErrorKind.TOO_LARGE


def test_understated_size_does_not_bypass_limit():
    extractor = DocumentExtractor(max_file_size=10)
    result = extractor.extract(UploadedFile("long.txt", b"x" * 11, TEXT_PLAIN, size=1))

    assert result.reason is ErrorKind.TOO_LARGE


# =============================================================================
# MEDIA TYPE RESOLUTION
# =============================================================================

@pytest.mark.parametrize("filename,expected", [
    ("a.txt", TEXT_PLAIN),
    ("A.DOCX", DOCX),
    ("old.doc", MSWORD),
    ("x.pdf", PDF),
    ("archive.zip", ""),
    ("no_extension", ""),
])
def test_media_type_for_filename(filename, expected):
    assert media_type_for_filename(filename) == expected


@pytest.mark.parametrize("declared", ["", "application/octet-stream"])
def test_missing_media_type_is_inferred_from_extension(extractor, declared):
    result = extractor.extract(UploadedFile("notes.txt", b"inferred", declared))

    assert isinstance(result, ExtractionSuccess)
    assert result.text == "inferred"


def test_declared_type_wins_over_extension(extractor):
    result = extractor.extract(UploadedFile("notes.txt", b"%PDF", PDF))

    assert result.reason is ErrorKind.UNSUPPORTED_FORMAT


@pytest.mark.asyncio
async def test_extract_async_matches_extract(extractor, text_file):
    upload = text_file("async.txt", "from a worker thread")

    assert await extractor.extract_async(upload) == extractor.extract(upload)
