"""Shared test fixtures."""

import asyncio
import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import asyncpg
import pytest

from regwatch.db import documents as sql
from regwatch.db.models import DocumentDraft, SourceDescriptor
from regwatch.llm.gateway import CompletionResult


def make_source(
    url: str = "https://www.fairwork.gov.au/pay-and-wages/minimum-wages",
    country: str = "AU",
    category: str = "award",
    priority: str = "high",
    subsection: str = "Minimum Wages",
) -> SourceDescriptor:
    return SourceDescriptor(
        country=country,
        section="Fair Work (Employment Law)",
        subsection=subsection,
        url=url,
        priority=priority,  # type: ignore[arg-type]
        category=category,  # type: ignore[arg-type]
    )


def make_draft(
    text: str = "The national minimum wage is $24.10 per hour.",
    url: str = "https://www.fairwork.gov.au/pay-and-wages/minimum-wages",
    title: str = "Minimum wages",
) -> DocumentDraft:
    return DocumentDraft(
        country="AU",
        category="award",
        title=title,
        source_url=url,
        content=f"<html><body>{text}</body></html>",
        extracted_text=text,
        token_count=len(text) // 4,
        scraped_at=datetime.now(UTC),
    )


class FakeDocumentConnection:
    """In-memory stand-in for an asyncpg connection over regulatory_documents.

    Dispatches on the DocumentStore SQL constants. Transactions snapshot the
    table and restore it if the block raises.
    """

    def __init__(self, db: "FakeDocumentDB") -> None:
        self._db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        snapshot = copy.deepcopy(self._db.rows)
        try:
            yield
        except BaseException:
            self._db.rows = snapshot
            raise

    async def fetchrow(self, query: str, *args: Any) -> dict[str, Any] | None:
        assert query == sql.SELECT_ACTIVE_FOR_UPDATE
        # Yield so concurrent upserts get a chance to interleave
        await asyncio.sleep(0)
        for row in self._db.rows:
            if row["source_url"] == args[0] and row["status"] == "active":
                return row
        return None

    async def fetchval(self, query: str, *args: Any) -> UUID:
        assert query == sql.INSERT_DOCUMENT
        if self._db.fail_insert:
            raise asyncpg.PostgresError("insert rejected")
        (country, category, title, source_url, content, extracted_text,
         content_hash, token_count, effective_date, scraped_at, last_checked_at,
         metadata) = args
        if any(r["source_url"] == source_url and r["status"] == "active" for r in self._db.rows):
            raise asyncpg.PostgresError("duplicate active row")
        document_id = uuid4()
        self._db.rows.append(
            {
                "id": document_id,
                "country": country,
                "category": category,
                "title": title,
                "source_url": source_url,
                "content": content,
                "extracted_text": extracted_text,
                "content_hash": content_hash,
                "token_count": token_count,
                "effective_date": effective_date,
                "expiry_date": None,
                "status": "active",
                "scraped_at": scraped_at,
                "last_checked_at": last_checked_at,
                "metadata": metadata,
                "created_at": last_checked_at,
                "updated_at": last_checked_at,
            }
        )
        return document_id

    async def execute(self, query: str, *args: Any) -> str:
        document_id, now = args
        row = self._db.find(document_id)
        if query == sql.TOUCH_DOCUMENT:
            row["last_checked_at"] = now
        elif query == sql.SUPERSEDE_DOCUMENT:
            if row["status"] == "active":
                row.update(status="superseded", expiry_date=now, updated_at=now)
        else:
            raise AssertionError(f"Unexpected SQL: {query}")
        return "UPDATE 1"


class FakeDocumentDB:
    """Pool-shaped fake holding regulatory_documents rows in a list."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail_insert = False

    def find(self, document_id: UUID) -> dict[str, Any]:
        return next(r for r in self.rows if r["id"] == document_id)

    def active_rows(self, url: str) -> list[dict[str, Any]]:
        return [r for r in self.rows if r["source_url"] == url and r["status"] == "active"]

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[FakeDocumentConnection]:
        yield FakeDocumentConnection(self)


@pytest.fixture
def fake_document_db() -> FakeDocumentDB:
    return FakeDocumentDB()


@pytest.fixture
def mock_db_pool() -> MagicMock:
    """Mock of asyncpg.Pool with context-managed acquire().

    asyncpg.Pool.acquire() returns an async context manager (not a coroutine),
    so we use MagicMock for the pool and configure __aenter__/__aexit__ manually.
    """
    conn = AsyncMock()
    conn.fetch.return_value = []

    acm = MagicMock()
    acm.__aenter__ = AsyncMock(return_value=conn)
    acm.__aexit__ = AsyncMock(return_value=False)

    pool = MagicMock()
    pool.acquire.return_value = acm
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchrow = AsyncMock(return_value=None)
    pool.fetchval = AsyncMock(return_value=None)
    pool.execute = AsyncMock(return_value="UPDATE 1")
    return pool


@pytest.fixture
def mock_llm() -> AsyncMock:
    """Async mock of LLMGateway returning a valid JSON summary."""
    llm = AsyncMock()
    llm.complete.return_value = CompletionResult(
        content=(
            '{"title": "National minimum wage", '
            '"summary": "The national minimum wage rises from 1 July 2024.", '
            '"obligations": ["Pay at least $24.10 per hour"], '
            '"effective_date": "2024-07-01", '
            '"citations": [{"label": "Fair Work", '
            '"url": "https://www.fairwork.gov.au/pay-and-wages/minimum-wages"}]}'
        ),
        tool_calls=None,
        raw_message=MagicMock(),
        model="gemini/gemini-2.5-flash",
    )
    return llm


@pytest.fixture
def minimum_wage_html() -> str:
    return """
    <html>
      <head><title>Minimum wages - Fair Work Ombudsman</title>
      <style>body { color: red; }</style></head>
      <body>
        <script>trackPageView();</script>
        <h1>Minimum wages</h1>
        <p>The national minimum wage is $24.10 per hour &amp; $915.90 per week.</p>
        <p>It applies from the first full pay period on or after 1 July 2024.</p>
      </body>
    </html>
    """
