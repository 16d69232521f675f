# =============================================================================
# KNOWLEDGE SOURCE REPOSITORY
# =============================================================================
# asyncpg persistence for knowledge source records
# =============================================================================

import json
import logging
import os
from typing import Any, Dict, List, Optional

import asyncpg

from knowledge_base.ingestion.models import KnowledgeSource, SourceKind, SourceStatus

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS knowledge_sources (
        id UUID PRIMARY KEY,
        agent_id VARCHAR(64) NOT NULL,
        name TEXT NOT NULL,
        type VARCHAR(16) NOT NULL,
        content TEXT,
        url TEXT,
        file_name TEXT,
        status VARCHAR(16) DEFAULT 'pending',
        error_message TEXT,
        tokens_count INTEGER,
        metadata JSONB DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS idx_knowledge_sources_agent ON knowledge_sources(agent_id);
"""

SOURCE_COLUMNS = """
    id::text AS id, agent_id, name, type, content, url, file_name, status,
    tokens_count, metadata, created_at, updated_at
"""


async def create_pool() -> asyncpg.Pool:
    """Create the database connection pool from environment settings."""
    return await asyncpg.create_pool(
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", 5432)),
        database=os.getenv("DB_NAME", "agents"),
        user=os.getenv("DB_USER", "agents"),
        password=os.getenv("DB_PASSWORD", "agents_password"),
        min_size=2,
        max_size=10
    )


def row_to_source(row: Any) -> KnowledgeSource:
    """Convert a ``knowledge_sources`` row into a KnowledgeSource."""
    metadata = row["metadata"]
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    return KnowledgeSource(
        id=row["id"],
        agent_id=row["agent_id"],
        kind=SourceKind(row["type"]),
        name=row["name"],
        content=row["content"] or "",
        word_count=row["tokens_count"] or 0,
        status=SourceStatus(row["status"] or SourceStatus.PENDING.value),
        url=row["url"],
        file_name=row["file_name"],
        metadata=metadata or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class KnowledgeSourceRepository:
    """Reads and writes knowledge sources over one asyncpg connection."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def ensure_schema(self):
        await self.conn.execute(SCHEMA_SQL)

    async def create(self, source: KnowledgeSource) -> KnowledgeSource:
        record = source.to_record()
        await self.conn.execute("""
            INSERT INTO knowledge_sources (id, agent_id, name, type, content, url, file_name,
                                           status, tokens_count, metadata, created_at, updated_at)
            VALUES ($1::uuid, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11, $12)
        """, record["id"], record["agent_id"], record["name"], record["type"],
             record["content"], record["url"], record["file_name"], record["status"],
             record["tokens_count"], json.dumps(record["metadata"]),
             record["created_at"], record["updated_at"])
        logger.info(f"Created knowledge source {source.id} for agent {source.agent_id}")
        return source

    async def get(self, agent_id: str, source_id: str) -> Optional[KnowledgeSource]:
        row = await self.conn.fetchrow(f"""
            SELECT {SOURCE_COLUMNS}
            FROM knowledge_sources
            WHERE id::text = $1 AND agent_id = $2
        """, source_id, agent_id)
        return row_to_source(row) if row else None

    async def list_for_agent(self, agent_id: str) -> List[KnowledgeSource]:
        rows = await self.conn.fetch(f"""
            SELECT {SOURCE_COLUMNS}
            FROM knowledge_sources
            WHERE agent_id = $1
            ORDER BY created_at DESC
        """, agent_id)
        return [row_to_source(row) for row in rows]

    async def update_content(self, source: KnowledgeSource) -> KnowledgeSource:
        await self.conn.execute("""
            UPDATE knowledge_sources
            SET content = $2, tokens_count = $3, updated_at = $4
            WHERE id::text = $1
        """, source.id, source.content, source.word_count, source.updated_at)
        return source

    async def delete(self, agent_id: str, source_id: str) -> bool:
        result = await self.conn.execute(
            "DELETE FROM knowledge_sources WHERE id::text = $1 AND agent_id = $2",
            source_id, agent_id
        )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.split()[-1] != "0"

    async def stats(self, agent_id: str) -> Dict[str, int]:
        row = await self.conn.fetchrow("""
            SELECT COUNT(*) AS total_items,
                   COALESCE(SUM(tokens_count), 0) AS total_words,
                   COUNT(*) FILTER (WHERE type = 'url') AS links,
                   COUNT(*) FILTER (WHERE type = 'file') AS documents,
                   COUNT(*) FILTER (WHERE type = 'text') AS texts
            FROM knowledge_sources
            WHERE agent_id = $1
        """, agent_id)
        return {key: int(row[key]) for key in ("total_items", "total_words", "links", "documents", "texts")}
