# =============================================================================
# KNOWLEDGE SOURCE API
# =============================================================================
# API endpoints for adding, editing and retraining an agent's knowledge
# =============================================================================

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
import asyncpg

from knowledge_base import config
from knowledge_base.ingestion import ContentIngester, ErrorKind, ExtractionFailure, IngestionResult, UploadedFile
from knowledge_base.processing_client import KnowledgeProcessingClient
from .repository import KnowledgeSourceRepository, create_pool
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

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents/{agent_id}/knowledge", tags=["knowledge"])
security = HTTPBearer(auto_error=False)

STATUS_BY_ERROR = {
    ErrorKind.MISSING_CREDENTIAL: 503,
    ErrorKind.UPSTREAM_ERROR: 502,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.TOO_LARGE: 413,
    ErrorKind.UNSUPPORTED_FORMAT: 415,
    ErrorKind.EMPTY_CONTENT: 422,
    ErrorKind.INVALID_ENCODING: 422,
    ErrorKind.EXTRACTION_ERROR: 422,
}


# =============================================================================
# DEPENDENCIES
# =============================================================================

db_pool: Optional[asyncpg.Pool] = None
_ingester: Optional[ContentIngester] = None
_processing_client: Optional[KnowledgeProcessingClient] = None


async def get_db():
    """Dependency for database connection."""
    global db_pool
    if db_pool is None:
        db_pool = await create_pool()
    async with db_pool.acquire() as conn:
        yield conn


async def get_repository(conn: asyncpg.Connection = Depends(get_db)) -> KnowledgeSourceRepository:
    return KnowledgeSourceRepository(conn)


def get_ingester() -> ContentIngester:
    global _ingester
    if _ingester is None:
        _ingester = ContentIngester()
    return _ingester


def get_processing_client() -> KnowledgeProcessingClient:
    global _processing_client
    if _processing_client is None:
        _processing_client = KnowledgeProcessingClient()
    return _processing_client


async def verify_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify admin token (simplified for development)."""
    if credentials is None:
        return {"user_id": 0, "email": "anonymous", "role": "viewer"}
    return {"user_id": 1, "email": "admin@example.com", "role": "admin"}


# =============================================================================
# HELPERS
# =============================================================================

def failure_to_http(failure: ExtractionFailure, skipped: Optional[List[ExtractionFailure]] = None) -> HTTPException:
    """Map an ingestion failure to an HTTP error with a structured detail."""
    detail: Dict[str, Any] = {
        "error": failure.reason.value,
        "message": failure.message,
    }
    if failure.status is not None:
        detail["upstream_status"] = failure.status
    if skipped:
        detail["failed_files"] = [SkippedFile.from_failure(f).model_dump() for f in skipped]
    return HTTPException(status_code=STATUS_BY_ERROR[failure.reason], detail=detail)


async def to_uploaded_file(upload: UploadFile) -> UploadedFile:
    """Read an upload, leaving oversized files unread."""
    size = upload.size
    if size is not None and size > config.MAX_FILE_SIZE_BYTES:
        content = b""
    else:
        content = await upload.read()
        size = len(content)
    return UploadedFile(
        filename=upload.filename or "upload",
        content=content,
        media_type=upload.content_type or "",
        size=size,
    )


async def trigger_processing(client: KnowledgeProcessingClient, source_id: str) -> ProcessingStatus:
    """Run chunking/embedding; a failure here never undoes the saved source."""
    try:
        result = await client.process_source(source_id)
    except Exception as e:
        logger.exception(f"Processing trigger failed for source {source_id}")
        return ProcessingStatus(success=False, error=str(e))
    return ProcessingStatus(**result)


async def persist_and_process(
    result: IngestionResult,
    repository: KnowledgeSourceRepository,
    client: KnowledgeProcessingClient
) -> IngestionResponse:
    if not result.ok:
        raise failure_to_http(result.error, result.skipped)

    try:
        source = await repository.create(result.source)
    except Exception as e:
        logger.error(f"Error saving knowledge source: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error saving knowledge source: {str(e)}"
        )

    processing = await trigger_processing(client, source.id)

    return IngestionResponse(
        source=KnowledgeSourceResponse.from_source(source),
        skipped_files=[SkippedFile.from_failure(f) for f in result.skipped],
        processing=processing,
    )


async def get_source_or_404(repository: KnowledgeSourceRepository, agent_id: str, source_id: str):
    source = await repository.get(agent_id, source_id)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Knowledge source not found"
        )
    return source


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/url", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
async def add_url_source(
    agent_id: str,
    url: str = Form(...),
    name: Optional[str] = Form(None),
    repository: KnowledgeSourceRepository = Depends(get_repository),
    ingester: ContentIngester = Depends(get_ingester),
    client: KnowledgeProcessingClient = Depends(get_processing_client),
    _: dict = Depends(verify_token)
) -> IngestionResponse:
    """Crawl a web page into a knowledge source."""
    try:
        request = UrlSourceCreate(url=url, name=name)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_url", "message": e.errors()[0]["msg"]}
        )

    result = await ingester.ingest_url(request.url, agent_id, request.name)
    return await persist_and_process(result, repository, client)


@router.post("/text", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
async def add_text_source(
    agent_id: str,
    text: str = Form(...),
    name: Optional[str] = Form(None),
    repository: KnowledgeSourceRepository = Depends(get_repository),
    ingester: ContentIngester = Depends(get_ingester),
    client: KnowledgeProcessingClient = Depends(get_processing_client),
    _: dict = Depends(verify_token)
) -> IngestionResponse:
    """Create a knowledge source from pasted text."""
    result = await ingester.ingest_text(text, agent_id, name)
    return await persist_and_process(result, repository, client)


@router.post("/files", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
async def add_file_source(
    agent_id: str,
    files: List[UploadFile] = File(...),
    name: Optional[str] = Form(None),
    repository: KnowledgeSourceRepository = Depends(get_repository),
    ingester: ContentIngester = Depends(get_ingester),
    client: KnowledgeProcessingClient = Depends(get_processing_client),
    _: dict = Depends(verify_token)
) -> IngestionResponse:
    """Upload documents (TXT, DOCX, DOC) as one knowledge source."""
    uploaded = [await to_uploaded_file(upload) for upload in files]
    result = await ingester.ingest_files(uploaded, agent_id, name)
    return await persist_and_process(result, repository, client)


@router.get("", response_model=KnowledgeSourceList)
async def list_sources(
    agent_id: str,
    repository: KnowledgeSourceRepository = Depends(get_repository),
    _: dict = Depends(verify_token)
) -> KnowledgeSourceList:
    """List all knowledge sources of an agent."""
    sources = await repository.list_for_agent(agent_id)
    return KnowledgeSourceList(
        sources=[KnowledgeSourceResponse.from_source(s) for s in sources],
        total=len(sources)
    )


@router.get("/stats", response_model=KnowledgeStats)
async def get_stats(
    agent_id: str,
    repository: KnowledgeSourceRepository = Depends(get_repository),
    _: dict = Depends(verify_token)
) -> KnowledgeStats:
    """Get knowledge totals for an agent."""
    return KnowledgeStats(**await repository.stats(agent_id))


@router.get("/{source_id}", response_model=KnowledgeSourceResponse)
async def get_source(
    agent_id: str,
    source_id: str,
    repository: KnowledgeSourceRepository = Depends(get_repository),
    _: dict = Depends(verify_token)
) -> KnowledgeSourceResponse:
    source = await get_source_or_404(repository, agent_id, source_id)
    return KnowledgeSourceResponse.from_source(source)


@router.put("/{source_id}", response_model=KnowledgeSourceResponse)
async def update_source_content(
    agent_id: str,
    source_id: str,
    update: ContentUpdate,
    repository: KnowledgeSourceRepository = Depends(get_repository),
    ingester: ContentIngester = Depends(get_ingester),
    _: dict = Depends(verify_token)
) -> KnowledgeSourceResponse:
    """Save edited content; the word count is recomputed."""
    source = await get_source_or_404(repository, agent_id, source_id)

    revised = ingester.assembler.revise(source, update.content)
    if isinstance(revised, ExtractionFailure):
        raise failure_to_http(revised)

    await repository.update_content(revised)
    return KnowledgeSourceResponse.from_source(revised)


@router.post("/{source_id}/retrain", response_model=IngestionResponse)
async def retrain_source(
    agent_id: str,
    source_id: str,
    update: Optional[ContentUpdate] = Body(None),
    repository: KnowledgeSourceRepository = Depends(get_repository),
    ingester: ContentIngester = Depends(get_ingester),
    client: KnowledgeProcessingClient = Depends(get_processing_client),
    _: dict = Depends(verify_token)
) -> IngestionResponse:
    """Re-process a source (optionally with edited content) and regenerate embeddings."""
    source = await get_source_or_404(repository, agent_id, source_id)

    content = update.content if update is not None else source.content
    revised = ingester.assembler.revise(source, content)
    if isinstance(revised, ExtractionFailure):
        raise failure_to_http(
            ExtractionFailure(revised.reason, revised.source_name, "No content to retrain with")
        )

    await repository.update_content(revised)
    processing = await trigger_processing(client, revised.id)

    return IngestionResponse(
        source=KnowledgeSourceResponse.from_source(revised),
        processing=processing,
    )


@router.delete("/{source_id}")
async def delete_source(
    agent_id: str,
    source_id: str,
    repository: KnowledgeSourceRepository = Depends(get_repository),
    _: dict = Depends(verify_token)
) -> Dict[str, Any]:
    """Delete a knowledge source."""
    deleted = await repository.delete(agent_id, source_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Knowledge source not found"
        )
    return {"success": True, "deleted_id": source_id}
