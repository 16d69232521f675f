# =============================================================================
# WEB PAGE FETCHER
# =============================================================================
# Retrieves a page's main content through the crawl service
# =============================================================================

import asyncio
import logging
from typing import Any, Dict, Optional, Union

import aiohttp
from aiohttp import ClientTimeout

from knowledge_base import config
from .models import ErrorKind, ExtractionFailure, PageContent
from .normalizer import normalize

logger = logging.getLogger(__name__)

FetchResult = Union[PageContent, ExtractionFailure]


class WebPageFetcher:
    """
    Client for the external crawl/render service.

    One ``POST /scrape`` per call, bounded by a single timeout and never
    retried; retry policy belongs to the caller. The Markdown returned by the
    service is normalized before it leaves this class.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.api_key = config.CRAWL_API_KEY if api_key is None else api_key
        self.base_url = (base_url or config.CRAWL_API_URL).rstrip("/")
        self.timeout = ClientTimeout(
            total=timeout_seconds if timeout_seconds is not None else config.CRAWL_TIMEOUT_SECONDS
        )
        self._session = session

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def fetch_page(self, url: str) -> FetchResult:
        """
        Fetch and normalize the main content of a web page.

        Args:
            url: Page to crawl

        Returns:
            PageContent with normalized text, or ExtractionFailure
        """
        if not self.api_key:
            logger.error("Crawl API key not configured")
            return ExtractionFailure(
                ErrorKind.MISSING_CREDENTIAL,
                url,
                "Crawl API key not configured. Set CRAWL_API_KEY."
            )

        logger.info(f"Crawling website: {url}")

        try:
            if self._session is not None:
                return await self._scrape(self._session, url)
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                return await self._scrape(session, url)

        except asyncio.TimeoutError:
            logger.warning(f"Crawl request timed out for {url}")
            return ExtractionFailure(
                ErrorKind.TIMEOUT,
                url,
                f"Crawl service did not respond within {self.timeout.total} seconds"
            )

        except aiohttp.ClientError as e:
            logger.error(f"Crawl request failed for {url}: {e}")
            return ExtractionFailure(ErrorKind.UPSTREAM_ERROR, url, f"Crawl service unreachable: {e}")

    async def _scrape(self, session: aiohttp.ClientSession, url: str) -> FetchResult:
        payload = {
            "url": url,
            "pageOptions": {"onlyMainContent": True},
        }

        async with session.post(
            f"{self.base_url}/scrape",
            json=payload,
            headers=self._get_headers(),
            timeout=self.timeout
        ) as response:
            logger.debug(f"Crawl response status: {response.status}")

            if not 200 <= response.status < 300:
                error_text = await response.text()
                logger.error(f"Crawl API error ({response.status}): {error_text[:500]}")
                return ExtractionFailure(
                    ErrorKind.UPSTREAM_ERROR,
                    url,
                    f"Crawl API error ({response.status})",
                    status=response.status
                )

            try:
                data = await response.json(content_type=None)
            except ValueError:
                logger.error(f"Crawl API returned a non-JSON body for {url}")
                return ExtractionFailure(
                    ErrorKind.UPSTREAM_ERROR,
                    url,
                    "Crawl API returned an invalid response",
                    status=response.status
                )

            return self._parse_response(url, data, response.status)

    def _parse_response(self, url: str, data: Any, status: int) -> FetchResult:
        if not isinstance(data, dict) or not data.get("success"):
            error_msg = data.get("error") if isinstance(data, dict) else None
            logger.error(f"Crawl failed for {url}: {error_msg or 'no success flag'}")
            return ExtractionFailure(
                ErrorKind.UPSTREAM_ERROR,
                url,
                error_msg or "Failed to crawl website",
                status=status
            )

        page = data.get("data") or {}
        raw_content = page.get("markdown") or page.get("content")
        if not raw_content or not isinstance(raw_content, str):
            logger.warning(f"No content found in crawl response for {url}")
            return ExtractionFailure(ErrorKind.EMPTY_CONTENT, url, "No content extracted from website")

        metadata = page.get("metadata") or {}
        content = normalize(raw_content)
        logger.info(f"Extracted {len(content)} characters from {url}")

        return PageContent(
            url=url,
            content=content,
            title=metadata.get("title") or None,
            description=metadata.get("description") or None,
        )
