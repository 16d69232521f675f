"""Shared fixtures for the knowledge ingestion tests."""

import io

import pytest
from docx import Document

from knowledge_base.ingestion.extractors import DOCX, TEXT_PLAIN
from knowledge_base.ingestion.models import UploadedFile


def build_docx(paragraphs, table_rows=None) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def docx_bytes():
    return build_docx


@pytest.fixture
def text_file():
    def _make(filename: str, text: str, media_type: str = TEXT_PLAIN) -> UploadedFile:
        content = text.encode("utf-8")
        return UploadedFile(filename=filename, content=content, media_type=media_type, size=len(content))
    return _make


@pytest.fixture
def word_file():
    def _make(filename: str, paragraphs, media_type: str = DOCX) -> UploadedFile:
        content = build_docx(paragraphs)
        return UploadedFile(filename=filename, content=content, media_type=media_type, size=len(content))
    return _make


@pytest.fixture
def corrupt_word_file():
    def _make(filename: str = "broken.docx") -> UploadedFile:
        content = b"PK\x03\x04 this is not really a zip archive"
        return UploadedFile(filename=filename, content=content, media_type=DOCX, size=len(content))
    return _make
