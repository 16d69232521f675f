# =============================================================================
# KNOWLEDGE SOURCE API SCHEMAS
# =============================================================================
# Pydantic models for the knowledge source API
# =============================================================================

"""
Database Tables:
----------------
1. knowledge_sources - Ingested knowledge attached to an agent

This module defines:
- Pydantic schemas for API validation and responses
- Conversion from the ingestion pipeline's KnowledgeSource record
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from knowledge_base.ingestion.models import ExtractionFailure, KnowledgeSource


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class UrlSourceCreate(BaseModel):
    """Web page to crawl into a knowledge source."""
    url: str = Field(..., description="HTTP(S) page URL")
    name: Optional[str] = Field(None, description="Display name (defaults to page title)")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("URL must be an absolute http(s) URL")
        return v


class ContentUpdate(BaseModel):
    """Edited content for an existing knowledge source."""
    content: str = Field(..., description="Replacement content")


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class KnowledgeSourceResponse(BaseModel):
    """Knowledge source as returned by the API."""
    id: str
    agent_id: str
    name: str
    type: str = Field(..., description="url, file, or text")
    status: str = Field(..., description="pending, completed, or failed")
    content: str
    tokens_count: int = Field(..., description="Whitespace-delimited word count")
    url: Optional[str] = None
    file_name: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_source(cls, source: KnowledgeSource) -> "KnowledgeSourceResponse":
        return cls(**source.to_record())


class SkippedFile(BaseModel):
    """A file left out of a partially successful batch."""
    file_name: str
    reason: str
    message: str = ""

    @classmethod
    def from_failure(cls, failure: ExtractionFailure) -> "SkippedFile":
        return cls(file_name=failure.source_name, reason=failure.reason.value, message=failure.message)


class ProcessingStatus(BaseModel):
    """Outcome of the chunking/embedding trigger."""
    success: bool
    chunks_created: Optional[int] = None
    error: Optional[str] = None


class IngestionResponse(BaseModel):
    """Response for knowledge source creation and retraining."""
    success: bool = True
    source: KnowledgeSourceResponse
    skipped_files: List[SkippedFile] = Field(default_factory=list)
    processing: Optional[ProcessingStatus] = None


class KnowledgeSourceList(BaseModel):
    sources: List[KnowledgeSourceResponse]
    total: int


class KnowledgeStats(BaseModel):
    """Per-agent knowledge totals."""
    total_items: int = 0
    total_words: int = 0
    links: int = 0
    documents: int = 0
    texts: int = 0
