# Admin Configuration Module
from .schemas import (
    ContentUpdate,
    IngestionResponse,
    KnowledgeSourceList,
    KnowledgeSourceResponse,
    KnowledgeStats,
    ProcessingStatus,
    SkippedFile,
    UrlSourceCreate,
)

__all__ = [
    "ContentUpdate",
    "IngestionResponse",
    "KnowledgeSourceList",
    "KnowledgeSourceResponse",
    "KnowledgeStats",
    "ProcessingStatus",
    "SkippedFile",
    "UrlSourceCreate",
]
