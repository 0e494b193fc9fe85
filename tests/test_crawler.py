"""Tests for the HTTP crawler."""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from regwatch.db.models import FetchedPage, FetchFailure
from regwatch.ingestion.crawler import Crawler
from regwatch.ingestion.rate_limit import RateLimiter

_URL = "https://www.fairwork.gov.au/pay-and-wages/minimum-wages"


@pytest.fixture
def crawler() -> Crawler:
    """Crawler with rate limiting disabled for fast tests."""
    return Crawler(rate_limiter=RateLimiter(0.0))


@pytest.mark.asyncio
async def test_fetch_html_page(
    httpx_mock: HTTPXMock, crawler: Crawler, minimum_wage_html: str
) -> None:
    """2xx response with a body produces a FetchedPage."""
    httpx_mock.add_response(
        url=_URL, text=minimum_wage_html, headers={"content-type": "text/html; charset=utf-8"}
    )

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchedPage)
    assert result.ok is True
    assert result.status_code == 200
    assert result.html == minimum_wage_html
    assert result.title == "Minimum wages - Fair Work Ombudsman"
    assert result.content_type.startswith("text/html")
    assert result.fetched_at.tzinfo is not None


@pytest.mark.asyncio
async def test_fetch_follows_redirects(
    httpx_mock: HTTPXMock, crawler: Crawler, minimum_wage_html: str
) -> None:
    final = "https://www.fairwork.gov.au/minimum-wages"
    httpx_mock.add_response(url=_URL, status_code=301, headers={"location": final})
    httpx_mock.add_response(url=final, text=minimum_wage_html)

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchedPage)
    assert result.url == _URL
    assert result.final_url == final


@pytest.mark.asyncio
async def test_fetch_http_error_is_tagged(httpx_mock: HTTPXMock, crawler: Crawler) -> None:
    """404 comes back as an http_status failure, not an exception."""
    httpx_mock.add_response(url=_URL, status_code=404)

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchFailure)
    assert result.ok is False
    assert result.kind == "http_status"
    assert result.status_code == 404
    assert "404" in result.message


@pytest.mark.asyncio
async def test_fetch_empty_body(httpx_mock: HTTPXMock, crawler: Crawler) -> None:
    httpx_mock.add_response(url=_URL, text="   <html></html>  ")

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchFailure)
    assert result.kind == "empty_body"


@pytest.mark.asyncio
async def test_fetch_timeout(httpx_mock: HTTPXMock, crawler: Crawler) -> None:
    httpx_mock.add_exception(httpx.ReadTimeout("read timed out"), url=_URL)

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchFailure)
    assert result.kind == "timeout"
    assert result.status_code is None


@pytest.mark.asyncio
async def test_fetch_network_error(httpx_mock: HTTPXMock, crawler: Crawler) -> None:
    httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=_URL)

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchFailure)
    assert result.kind == "network"
    assert "ConnectError" in result.message


@pytest.mark.asyncio
async def test_fetch_sends_user_agent(
    httpx_mock: HTTPXMock, crawler: Crawler, minimum_wage_html: str
) -> None:
    httpx_mock.add_response(url=_URL, text=minimum_wage_html)

    await crawler.fetch(_URL)

    request = httpx_mock.get_request()
    assert request is not None
    assert request.headers["User-Agent"]


def test_defaults_come_from_config() -> None:
    crawler = Crawler()
    assert crawler.rate_limiter.min_interval == 2.0
    assert crawler.timeout == 45.0
    assert crawler.min_body_length == 40


@pytest.mark.asyncio
async def test_fetch_title_decodes_entities(httpx_mock: HTTPXMock, crawler: Crawler) -> None:
    html = (
        "<html><head><title>Pay &amp; Conditions\n  Guide</title></head>"
        "<body><p>Pay and conditions for award-covered employees.</p></body></html>"
    )
    httpx_mock.add_response(url=_URL, text=html)

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchedPage)
    assert result.title == "Pay & Conditions Guide"


@pytest.mark.asyncio
async def test_fetch_without_title(httpx_mock: HTTPXMock, crawler: Crawler) -> None:
    html = "<html><body><p>Payroll tax applies above the annual threshold.</p></body></html>"
    httpx_mock.add_response(url=_URL, text=html)

    result = await crawler.fetch(_URL)

    assert isinstance(result, FetchedPage)
    assert result.title is None
