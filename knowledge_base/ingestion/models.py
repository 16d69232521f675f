# =============================================================================
# INGESTION DATA MODEL
# =============================================================================
# Value types shared by the extraction, aggregation and assembly stages
# =============================================================================

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union


# =============================================================================
# ENUMS
# =============================================================================

class ErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    UPSTREAM_ERROR = "upstream_error"
    TIMEOUT = "timeout"
    EMPTY_CONTENT = "empty_content"
    UNSUPPORTED_FORMAT = "unsupported_format"
    TOO_LARGE = "too_large"
    INVALID_ENCODING = "invalid_encoding"
    EXTRACTION_ERROR = "extraction_error"


class SourceKind(str, Enum):
    """Knowledge source type; the value is the persisted ``type`` tag."""
    URL = "url"
    FILE = "file"
    TEXT = "text"


class SourceStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class BatchStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


# =============================================================================
# EXTRACTION RESULTS
# =============================================================================

@dataclass(frozen=True)
class ExtractionSuccess:
    text: str
    source_name: str


@dataclass(frozen=True)
class ExtractionFailure:
    """A typed, recoverable failure of one extraction or ingestion step."""
    reason: ErrorKind
    source_name: str
    message: str = ""
    status: Optional[int] = None


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]


@dataclass(frozen=True)
class PageContent:
    """Normalized page text returned by the crawl service."""
    url: str
    content: str
    title: Optional[str] = None
    description: Optional[str] = None


# =============================================================================
# RAW INPUTS
# =============================================================================

@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes
    media_type: str = ""
    size: Optional[int] = None

    @property
    def byte_length(self) -> int:
        # A declared size never hides content that is actually larger
        if self.size is None:
            return len(self.content)
        return max(self.size, len(self.content))


@dataclass(frozen=True)
class UrlInput:
    kind: ClassVar[SourceKind] = SourceKind.URL
    url: str
    name: Optional[str] = None


@dataclass(frozen=True)
class FileBatchInput:
    kind: ClassVar[SourceKind] = SourceKind.FILE
    files: List[UploadedFile]
    name: Optional[str] = None


@dataclass(frozen=True)
class TextInput:
    kind: ClassVar[SourceKind] = SourceKind.TEXT
    text: str
    name: Optional[str] = None


RawInput = Union[UrlInput, FileBatchInput, TextInput]


# =============================================================================
# BATCH OUTCOME
# =============================================================================

@dataclass
class BatchOutcome:
    """Partitioned results of one multi-file extraction."""
    succeeded: List[ExtractionSuccess] = field(default_factory=list)
    failed: List[ExtractionFailure] = field(default_factory=list)

    @property
    def input_count(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def status(self) -> BatchStatus:
        if not self.succeeded:
            return BatchStatus.FAILED
        if self.failed:
            return BatchStatus.PARTIAL
        return BatchStatus.SUCCESS

    def combined_text(self) -> str:
        # Blank line between documents marks the boundary for chunking.
        return "\n\n".join(result.text for result in self.succeeded)


# =============================================================================
# KNOWLEDGE SOURCE
# =============================================================================

@dataclass(frozen=True)
class SourceOrigin:
    """Where the content came from; drives the derived display fields."""
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    file_names: List[str] = field(default_factory=list)
    name: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class KnowledgeSource:
    agent_id: str
    kind: SourceKind
    name: str
    content: str
    word_count: int
    status: SourceStatus = SourceStatus.COMPLETED
    url: Optional[str] = None
    file_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_record(self) -> Dict[str, Any]:
        """Row shape handed to the persistence layer."""
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "type": self.kind.value,
            "status": self.status.value,
            "content": self.content,
            "tokens_count": self.word_count,
            "name": self.name,
            "url": self.url,
            "file_name": self.file_name,
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class IngestionResult:
    """Outcome of one ingestion call: a record, or the reason there is none."""
    source: Optional[KnowledgeSource] = None
    error: Optional[ExtractionFailure] = None
    skipped: List[ExtractionFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.source is not None
