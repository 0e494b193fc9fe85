"""HTTP fetcher for regulatory pages with shared rate limiting.

Every outcome is returned as a value: a FetchedPage on success or a
FetchFailure describing why the page is unusable. Callers decide how
a failure is counted.
"""

import logging
from datetime import UTC, datetime

import httpx
from bs4 import BeautifulSoup

from config import load_yaml_config
from regwatch.db.models import FetchedPage, FetchFailure, FetchOutcome
from regwatch.errors import FetchError
from regwatch.ingestion.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def _crawler_config() -> dict:  # type: ignore[type-arg]
    return load_yaml_config("scraper.yaml")["crawler"]


def _extract_title(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None:
        return None
    title = " ".join(soup.title.get_text(" ", strip=True).split())
    return title or None


class Crawler:
    """Async HTTP fetcher gated by a shared RateLimiter."""

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        timeout: float | None = None,
        min_body_length: int | None = None,
    ) -> None:
        config = _crawler_config()
        self.rate_limiter = rate_limiter or RateLimiter(config["rate_limit_seconds"])
        self.timeout = timeout if timeout is not None else config["request_timeout_seconds"]
        self.min_body_length = (
            min_body_length if min_body_length is not None else config["min_body_length"]
        )
        self._headers = {
            "User-Agent": config["user_agent"],
            "Accept": "text/html,application/xhtml+xml",
        }

    async def _get(self, url: str) -> FetchedPage:
        """Fetch one URL, raising FetchError for any unusable outcome."""
        await self.rate_limiter.acquire()

        logger.info("Fetching: %s", url)
        try:
            async with httpx.AsyncClient(
                headers=self._headers,
                follow_redirects=True,
                timeout=self.timeout,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, "timeout", f"Timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchError(url, "network", f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise FetchError(
                url, "http_status", f"HTTP {response.status_code}", response.status_code
            )

        html = response.text
        if len(html.strip()) < self.min_body_length:
            raise FetchError(url, "empty_body", "Empty response body")

        logger.info("Fetched %s: %d bytes", url, len(html))
        return FetchedPage(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            content_type=response.headers.get("content-type", "unknown"),
            html=html,
            title=_extract_title(html),
            fetched_at=datetime.now(UTC),
        )

    async def fetch(self, url: str) -> FetchOutcome:
        """Fetch a URL and return either the page or a tagged failure."""
        try:
            return await self._get(url)
        except FetchError as e:
            logger.warning("Fetch failed for %s (%s): %s", url, e.kind, e)
            return FetchFailure(
                url=url,
                kind=e.kind,  # type: ignore[arg-type]
                message=str(e),
                status_code=e.status_code,
            )
