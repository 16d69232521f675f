# =============================================================================
# Admin API Main Application
# =============================================================================
# FastAPI application entry point
# =============================================================================

import logging
import os
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import knowledge_base
from .config.knowledge_base import router as knowledge_base_router
from .config.repository import KnowledgeSourceRepository, create_pool

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup
    db_pool = await create_pool()
    async with db_pool.acquire() as conn:
        await KnowledgeSourceRepository(conn).ensure_schema()
    knowledge_base.db_pool = db_pool
    logger.info("Database pool ready")

    yield

    # Shutdown
    await db_pool.close()
    knowledge_base.db_pool = None


# Create application
app = FastAPI(
    title="Agent Knowledge API",
    description="Knowledge source ingestion and management for conversational agents",
    version="1.0.0",
    lifespan=lifespan
)

cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(knowledge_base_router)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Agent Knowledge API",
        "version": "1.0.0",
        "docs": "/docs"
    }
