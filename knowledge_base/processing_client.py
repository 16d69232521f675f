# =============================================================================
# KNOWLEDGE PROCESSING CLIENT
# =============================================================================
# Async HTTP client for the chunking/embedding service, with retry logic
# =============================================================================

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

from knowledge_base import config

logger = logging.getLogger(__name__)


class KnowledgeProcessingClient:
    """
    Triggers chunking and embedding of a persisted knowledge source.

    Features:
    - Bearer authentication
    - Retry with exponential backoff on timeouts and connection errors
    - Honors Retry-After on 429
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0
    ):
        self.url = url or config.PROCESSING_API_URL
        self.api_key = config.PROCESSING_API_KEY if api_key is None else api_key
        self.timeout = ClientTimeout(
            total=timeout_seconds if timeout_seconds is not None else config.PROCESSING_TIMEOUT_SECONDS
        )
        self.max_retries = max_retries if max_retries is not None else config.PROCESSING_MAX_RETRIES
        self.retry_delay = retry_delay

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def process_source(self, source_id: str) -> Dict[str, Any]:
        """
        Ask the processing service to chunk and embed a knowledge source.

        Args:
            source_id: ID of the persisted knowledge source

        Returns:
            {"success": True, "chunks_created": n} or {"success": False, "error": msg}
        """
        for attempt in range(self.max_retries):
            try:
                async with aiohttp.ClientSession(timeout=self.timeout) as session:
                    async with session.post(
                        self.url,
                        json={"sourceId": source_id},
                        headers=self._get_headers()
                    ) as response:

                        try:
                            response_data = await response.json(content_type=None)
                        except ValueError:
                            response_data = {}
                        if not isinstance(response_data, dict):
                            response_data = {}

                        if 200 <= response.status < 300:
                            chunks = response_data.get("chunksCreated", 0)
                            logger.info(f"Processed source {source_id} into {chunks} chunks")
                            return {"success": True, "chunks_created": chunks}
                        elif response.status == 429:
                            retry_after = int(response.headers.get("Retry-After", 5))
                            logger.warning(f"Processing service rate limited, retrying in {retry_after}s")
                            await asyncio.sleep(retry_after)
                            continue
                        else:
                            error_msg = response_data.get("error", f"HTTP {response.status}")
                            logger.error(f"Processing failed for source {source_id}: {error_msg}")
                            return {"success": False, "error": error_msg}

            except asyncio.TimeoutError:
                logger.warning(f"Processing request timeout (attempt {attempt + 1}/{self.max_retries})")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))
                    continue
                return {"success": False, "error": "Processing request timed out"}

            except aiohttp.ClientError as e:
                logger.error(f"Processing client error: {str(e)}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))
                    continue
                return {"success": False, "error": "Connection error"}

        return {"success": False, "error": "Max retries exceeded"}
