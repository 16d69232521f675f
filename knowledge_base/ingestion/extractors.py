# =============================================================================
# DOCUMENT EXTRACTORS
# =============================================================================
# Turns uploaded file blobs into text, or a typed failure
# =============================================================================

import asyncio
import io
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from docx import Document
from docx.table import Table

from knowledge_base import config
from .models import ErrorKind, ExtractionFailure, ExtractionResult, ExtractionSuccess, UploadedFile

logger = logging.getLogger(__name__)

TEXT_PLAIN = "text/plain"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MSWORD = "application/msword"
PDF = "application/pdf"

# Used when the uploader did not declare a usable media type
MEDIA_TYPES_BY_EXTENSION = {
    ".txt": TEXT_PLAIN,
    ".docx": DOCX,
    ".doc": MSWORD,
    ".pdf": PDF,
}

SUPPORTED_MEDIA_TYPES = (TEXT_PLAIN, DOCX, MSWORD)

PDF_UNSUPPORTED_MESSAGE = (
    "PDF uploads are not supported. Please copy the text and use the "
    "\"Text\" option, or convert the file to DOCX/TXT."
)


def media_type_for_filename(filename: str) -> str:
    """Best-effort media type from a file extension ("" when unknown)."""
    return MEDIA_TYPES_BY_EXTENSION.get(Path(filename).suffix.lower(), "")


def _split_media_type(declared: str) -> Tuple[str, Dict[str, str]]:
    """Split ``type/subtype; key=value`` into the bare type and its parameters."""
    parts = [part.strip() for part in (declared or "").split(";")]
    params = {}
    for part in parts[1:]:
        if "=" in part:
            key, value = part.split("=", 1)
            params[key.strip().lower()] = value.strip().strip('"')
    return parts[0].lower(), params


class DocumentExtractor:
    """
    Extracts text from uploaded documents.

    Supported media types:
    - text/plain
    - Word open XML (.docx), also accepted under the legacy application/msword type

    PDF is rejected on purpose: the product asks users to paste PDF text
    instead of parsing it here. Nothing is read for unsupported or oversized
    files.
    """

    def __init__(self, max_file_size: Optional[int] = None):
        self.max_file_size = max_file_size if max_file_size is not None else config.MAX_FILE_SIZE_BYTES
        self._extractors: Dict[str, Callable[[UploadedFile, Dict[str, str]], ExtractionResult]] = {
            TEXT_PLAIN: self._extract_plain_text,
            DOCX: self._extract_word,
            MSWORD: self._extract_word,
        }

    def resolve_media_type(self, file: UploadedFile) -> Tuple[str, Dict[str, str]]:
        media_type, params = _split_media_type(file.media_type)
        if not media_type or media_type == "application/octet-stream":
            media_type = media_type_for_filename(file.filename) or media_type
        return media_type, params

    def extract(self, file: UploadedFile) -> ExtractionResult:
        """
        Extract text from a single uploaded file.

        Args:
            file: Uploaded file with declared media type

        Returns:
            ExtractionSuccess with the raw document text, or ExtractionFailure
        """
        media_type, params = self.resolve_media_type(file)

        if media_type == PDF:
            return ExtractionFailure(ErrorKind.UNSUPPORTED_FORMAT, file.filename, PDF_UNSUPPORTED_MESSAGE)

        extractor = self._extractors.get(media_type)
        if extractor is None:
            return ExtractionFailure(
                ErrorKind.UNSUPPORTED_FORMAT,
                file.filename,
                f"File type not supported: {media_type or 'unknown'}. Please use DOCX, DOC or TXT files."
            )

        if file.byte_length > self.max_file_size:
            return ExtractionFailure(
                ErrorKind.TOO_LARGE,
                file.filename,
                f"File size {file.byte_length} exceeds the {self.max_file_size} byte limit"
            )

        return extractor(file, params)

    async def extract_async(self, file: UploadedFile) -> ExtractionResult:
        """Run ``extract`` in a worker thread; parsing is CPU-bound."""
        return await asyncio.to_thread(self.extract, file)

    # =========================================================================
    # EXTRACTION STRATEGIES
    # =========================================================================

    def _extract_plain_text(self, file: UploadedFile, params: Dict[str, str]) -> ExtractionResult:
        encoding = params.get("charset") or "utf-8-sig"
        try:
            # Rejects unknown names and bytes-to-bytes codecs such as base64 or zlib
            b"".decode(encoding)
        except (LookupError, ValueError):
            logger.warning(f"Charset {encoding!r} declared for {file.filename} is not a text encoding, using UTF-8")
            encoding = "utf-8-sig"

        try:
            text = file.content.decode(encoding)
        except UnicodeDecodeError as e:
            logger.warning(f"Could not decode {file.filename} as {encoding}: {e}")
            return ExtractionFailure(
                ErrorKind.INVALID_ENCODING,
                file.filename,
                f"File is not valid {encoding} text"
            )

        return ExtractionSuccess(text=text, source_name=file.filename)

    def _extract_word(self, file: UploadedFile, params: Dict[str, str]) -> ExtractionResult:
        try:
            document = Document(io.BytesIO(file.content))
            paragraphs = self._document_paragraphs(document)
        except Exception as e:
            logger.warning(f"Failed to read Word document {file.filename}: {e}")
            return ExtractionFailure(
                ErrorKind.EXTRACTION_ERROR,
                file.filename,
                "Failed to extract text from document. Please ensure the file is a valid Word document."
            )

        text = "\n\n".join(paragraphs).strip()
        if not text:
            return ExtractionFailure(
                ErrorKind.EXTRACTION_ERROR,
                file.filename,
                "No text found in document. The file may be empty or corrupted."
            )

        return ExtractionSuccess(text=text, source_name=file.filename)

    def _document_paragraphs(self, document) -> List[str]:
        """Body paragraph and table-cell text, in document order."""
        paragraphs = []
        for block in document.iter_inner_content():
            if isinstance(block, Table):
                paragraphs.extend(self._table_paragraphs(block))
            elif block.text.strip():
                paragraphs.append(block.text.strip())
        return paragraphs

    def _table_paragraphs(self, table: Table) -> List[str]:
        paragraphs = []
        seen_cells = set()
        for row in table.rows:
            for cell in row.cells:
                # A merged cell repeats for every grid position it spans
                if cell._tc in seen_cells:
                    continue
                seen_cells.add(cell._tc)
                paragraphs.extend(p.text.strip() for p in cell.paragraphs if p.text.strip())
        return paragraphs
