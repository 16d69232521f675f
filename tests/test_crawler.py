"""Tests for the web page fetcher."""

import asyncio
import json

import aiohttp
import pytest

from knowledge_base.ingestion.crawler import WebPageFetcher
from knowledge_base.ingestion.models import ErrorKind, ExtractionFailure, PageContent


class FakeResponse:
    def __init__(self, status=200, payload=None, body=None):
        self.status = status
        self._payload = payload
        self._body = body if body is not None else json.dumps(payload)

    async def json(self, content_type="application/json"):
        if self._payload is None:
            raise json.JSONDecodeError("Expecting value", self._body, 0)
        return self._payload

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession and records every POST."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


def make_fetcher(session, api_key="fc-test-key"):
    return WebPageFetcher(
        api_key=api_key,
        base_url="https://crawl.example.com/v0/",
        timeout_seconds=5,
        session=session,
    )


def scrape_payload(markdown=None, content=None, metadata=None):
    data = {"metadata": metadata or {}}
    if markdown is not None:
        data["markdown"] = markdown
    if content is not None:
        data["content"] = content
    return {"success": True, "data": data}


@pytest.mark.asyncio
async def test_missing_credential_fails_without_network_call():
    session = FakeSession(FakeResponse(payload=scrape_payload("# Hi")))
    fetcher = make_fetcher(session, api_key="")

    result = await fetcher.fetch_page("https://example.com")

    assert isinstance(result, ExtractionFailure)
    assert result.reason is ErrorKind.MISSING_CREDENTIAL
    assert session.calls == []


@pytest.mark.asyncio
async def test_http_error_status_is_upstream_error_with_status():
    session = FakeSession(FakeResponse(status=403, body="Forbidden"))

    result = await make_fetcher(session).fetch_page("https://example.com/private")

    assert result.reason is ErrorKind.UPSTREAM_ERROR
    assert result.status == 403
    assert result.reason is not ErrorKind.EMPTY_CONTENT


@pytest.mark.asyncio
async def test_markdown_is_normalized_and_metadata_kept():
    payload = scrape_payload(
        markdown="# Welcome\n\nWe sell **fresh** bread.\n\n\n\n[Order](https://shop)",
        metadata={"title": "Bakery", "description": "Local bakery"},
    )
    session = FakeSession(FakeResponse(payload=payload))

    result = await make_fetcher(session).fetch_page("https://bakery.example")

    assert isinstance(result, PageContent)
    assert result.content == "Welcome\n\nWe sell fresh bread.\n\nOrder"
    assert result.title == "Bakery"
    assert result.description == "Local bakery"
    assert result.url == "https://bakery.example"


@pytest.mark.asyncio
async def test_request_shape():
    session = FakeSession(FakeResponse(payload=scrape_payload("text")))

    await make_fetcher(session).fetch_page("https://example.com")

    call = session.calls[0]
    assert call["url"] == "https://crawl.example.com/v0/scrape"
    assert call["json"] == {"url": "https://example.com", "pageOptions": {"onlyMainContent": True}}
    assert call["headers"]["Authorization"] == "Bearer fc-test-key"
    assert call["timeout"].total == 5


@pytest.mark.asyncio
async def test_content_field_is_used_when_markdown_missing():
    session = FakeSession(FakeResponse(payload=scrape_payload(content="Plain body")))

    result = await make_fetcher(session).fetch_page("https://example.com")

    assert result.content == "Plain body"
    assert result.title is None


@pytest.mark.asyncio
async def test_missing_content_is_empty_content():
    session = FakeSession(FakeResponse(payload=scrape_payload()))

    result = await make_fetcher(session).fetch_page("https://example.com")

    assert result.reason is ErrorKind.EMPTY_CONTENT


@pytest.mark.asyncio
async def test_unsuccessful_crawl_reports_service_error():
    payload = {"success": False, "error": "Site blocked crawling"}
    session = FakeSession(FakeResponse(payload=payload))

    result = await make_fetcher(session).fetch_page("https://example.com")

    assert result.reason is ErrorKind.UPSTREAM_ERROR
    assert result.message == "Site blocked crawling"


@pytest.mark.asyncio
async def test_timeout_is_reported_as_timeout():
    session = FakeSession(error=asyncio.TimeoutError())

    result = await make_fetcher(session).fetch_page("https://slow.example")

    assert result.reason is ErrorKind.TIMEOUT
    assert result.source_name == "https://slow.example"


@pytest.mark.asyncio
async def test_connection_error_is_upstream_error_without_status():
    session = FakeSession(error=aiohttp.ClientConnectionError("connection refused"))

    result = await make_fetcher(session).fetch_page("https://example.com")

    assert result.reason is ErrorKind.UPSTREAM_ERROR
    assert result.status is None


@pytest.mark.asyncio
async def test_non_json_body_is_upstream_error():
    session = FakeSession(FakeResponse(status=200, payload=None, body="<html>oops</html>"))

    result = await make_fetcher(session).fetch_page("https://example.com")

    assert result.reason is ErrorKind.UPSTREAM_ERROR
    assert result.status == 200
