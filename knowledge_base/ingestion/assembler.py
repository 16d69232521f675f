# =============================================================================
# KNOWLEDGE SOURCE ASSEMBLER
# =============================================================================
# Builds the knowledge source record from normalized content
# =============================================================================

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from knowledge_base import config
from .models import (
    ErrorKind,
    ExtractionFailure,
    KnowledgeSource,
    SourceKind,
    SourceOrigin,
    SourceStatus,
)
from .normalizer import normalize

logger = logging.getLogger(__name__)

AssemblyResult = Union[KnowledgeSource, ExtractionFailure]


def count_words(text: str) -> int:
    """
    Count whitespace-delimited tokens.

    This is the figure stored as ``tokens_count``. It approximates, and is not,
    a tokenizer-accurate model token count.
    """
    return len(text.split())


class KnowledgeSourceAssembler:
    """Derives display and metadata fields and produces the record to persist."""

    def __init__(self, default_text_name: Optional[str] = None):
        self.default_text_name = default_text_name or config.DEFAULT_TEXT_SOURCE_NAME

    def assemble(
        self,
        kind: SourceKind,
        normalized_text: str,
        origin: SourceOrigin,
        agent_id: str
    ) -> AssemblyResult:
        """
        Create a knowledge source from ready-to-store text.

        Args:
            kind: Source type
            normalized_text: Normalized Markdown, or document text as extracted
            origin: URL / title / filenames / caller-supplied name
            agent_id: Owning agent

        Returns:
            KnowledgeSource, or ExtractionFailure(EMPTY_CONTENT) for blank text
        """
        content = normalized_text
        if not content.strip():
            return ExtractionFailure(
                ErrorKind.EMPTY_CONTENT,
                self._display_name(kind, origin),
                "No usable content to create a knowledge source from"
            )

        metadata = {}
        if origin.title:
            metadata["title"] = origin.title
        if origin.description:
            metadata["description"] = origin.description
        if origin.file_names:
            metadata["file_names"] = list(origin.file_names)

        source = KnowledgeSource(
            agent_id=agent_id,
            kind=kind,
            name=self._display_name(kind, origin),
            content=content,
            word_count=count_words(content),
            status=SourceStatus.COMPLETED,
            url=origin.url if kind is SourceKind.URL else None,
            file_name=self._file_name(kind, origin),
            metadata=metadata,
        )
        logger.info(
            f"Assembled {kind.value} knowledge source '{source.name}' "
            f"for agent {agent_id} ({source.word_count} words)"
        )
        return source

    def revise(self, source: KnowledgeSource, content: str) -> AssemblyResult:
        """
        Apply edited content to an existing source, recomputing derived fields.

        Document sources keep their text as given; other kinds are re-normalized.
        """
        revised = content if source.kind is SourceKind.FILE else normalize(content)
        if not revised.strip():
            return ExtractionFailure(ErrorKind.EMPTY_CONTENT, source.name, "No content to save")

        return dataclasses.replace(
            source,
            content=revised,
            word_count=count_words(revised),
            updated_at=datetime.now(timezone.utc),
        )

    def _display_name(self, kind: SourceKind, origin: SourceOrigin) -> str:
        if origin.name and origin.name.strip():
            return origin.name.strip()
        if kind is SourceKind.URL:
            return origin.title or origin.url or ""
        if kind is SourceKind.FILE:
            return ", ".join(origin.file_names) or config.DEFAULT_FILE_SOURCE_NAME
        return self.default_text_name

    def _file_name(self, kind: SourceKind, origin: SourceOrigin) -> Optional[str]:
        if kind is not SourceKind.FILE:
            return None
        return origin.file_names[0] if origin.file_names else config.DEFAULT_FILE_SOURCE_NAME
