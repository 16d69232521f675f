"""
Knowledge Base Ingestion Package

Turns a web page, a batch of uploaded documents, or pasted text into one
normalized knowledge source record for an agent.

Quick start::

    # Crawl a web page
    python -m knowledge_base.ingestion.content_ingester -a <agent-id> -u https://example.com/about

    # Ingest documents (TXT, DOCX, DOC; max 10MB each)
    python -m knowledge_base.ingestion.content_ingester -a <agent-id> -f faq.docx -f pricing.txt

    # Ingest pasted text
    python -m knowledge_base.ingestion.content_ingester -a <agent-id> -t "Opening hours: 9-5" -n "Hours"
"""

from .assembler import KnowledgeSourceAssembler, count_words
from .batch import BatchAggregator
from .content_ingester import ContentIngester
from .crawler import WebPageFetcher
from .extractors import DocumentExtractor
from .models import (
    BatchOutcome,
    BatchStatus,
    ErrorKind,
    ExtractionFailure,
    ExtractionSuccess,
    FileBatchInput,
    IngestionResult,
    KnowledgeSource,
    PageContent,
    SourceKind,
    SourceOrigin,
    SourceStatus,
    TextInput,
    UploadedFile,
    UrlInput,
)
from .normalizer import normalize

__all__ = [
    "KnowledgeSourceAssembler",
    "count_words",
    "BatchAggregator",
    "ContentIngester",
    "WebPageFetcher",
    "DocumentExtractor",
    "BatchOutcome",
    "BatchStatus",
    "ErrorKind",
    "ExtractionFailure",
    "ExtractionSuccess",
    "FileBatchInput",
    "IngestionResult",
    "KnowledgeSource",
    "PageContent",
    "SourceKind",
    "SourceOrigin",
    "SourceStatus",
    "TextInput",
    "UploadedFile",
    "UrlInput",
    "normalize",
]
