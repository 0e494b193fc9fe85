"""Versioned storage for regulatory documents.

Each source URL has at most one ``active`` row. A content change flips the
current row to ``superseded`` and inserts the new version in the same
transaction; unchanged content only advances ``last_checked_at``. Rows are
never deleted, so superseded versions form the audit trail.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import asyncpg

from regwatch.db.models import DocumentDraft, RegulatoryDocument, UpsertResult
from regwatch.errors import PersistenceError

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, country, category, title, source_url, content, extracted_text,
    content_hash, token_count, effective_date, expiry_date, status,
    scraped_at, last_checked_at, metadata, created_at, updated_at
"""

SELECT_ACTIVE_FOR_UPDATE = """
    SELECT id, title, content_hash
    FROM regulatory_documents
    WHERE source_url = $1 AND status = 'active'
    FOR UPDATE
"""

INSERT_DOCUMENT = """
    INSERT INTO regulatory_documents
        (country, category, title, source_url, content, extracted_text,
         content_hash, token_count, effective_date, status, scraped_at,
         last_checked_at, metadata)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 'active', $10, $11, $12)
    RETURNING id
"""

TOUCH_DOCUMENT = """
    UPDATE regulatory_documents
    SET last_checked_at = $2
    WHERE id = $1
"""

SUPERSEDE_DOCUMENT = """
    UPDATE regulatory_documents
    SET status = 'superseded', expiry_date = $2, updated_at = $2
    WHERE id = $1 AND status = 'active'
"""


def _to_document(row: Any) -> RegulatoryDocument:
    return RegulatoryDocument(**dict(row))


class DocumentStore:
    """Create/update/unchanged decisions over the regulatory_documents table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool
        self._url_locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, url: str) -> asyncio.Lock:
        """Per-URL lock so two upserts for one URL never overlap in-process."""
        lock = self._url_locks.get(url)
        if lock is None:
            lock = self._url_locks[url] = asyncio.Lock()
        return lock

    async def _insert(
        self, conn: asyncpg.Connection, draft: DocumentDraft, now: datetime
    ) -> UUID:
        document_id = await conn.fetchval(
            INSERT_DOCUMENT,
            draft.country,
            draft.category,
            draft.title,
            draft.source_url,
            draft.content,
            draft.extracted_text,
            draft.content_hash,
            draft.token_count,
            draft.effective_date,
            draft.scraped_at,
            now,
            draft.metadata,
        )
        return UUID(str(document_id))

    async def _upsert(self, conn: asyncpg.Connection, draft: DocumentDraft) -> UpsertResult:
        now = datetime.now(UTC)
        existing = await conn.fetchrow(SELECT_ACTIVE_FOR_UPDATE, draft.source_url)

        if existing is None:
            document_id = await self._insert(conn, draft, now)
            logger.info("Created: %s (id=%s)", draft.title, document_id)
            return UpsertResult(action="created", document_id=document_id)

        existing_id = UUID(str(existing["id"]))
        if existing["content_hash"] == draft.content_hash:
            await conn.execute(TOUCH_DOCUMENT, existing_id, now)
            logger.info("Unchanged: %s", existing["title"])
            return UpsertResult(action="unchanged", document_id=existing_id)

        await conn.execute(SUPERSEDE_DOCUMENT, existing_id, now)
        document_id = await self._insert(conn, draft, now)
        logger.info(
            "Updated: %s (new id=%s, superseded id=%s)", draft.title, document_id, existing_id
        )
        return UpsertResult(action="updated", document_id=document_id, previous_id=existing_id)

    async def upsert(self, draft: DocumentDraft) -> UpsertResult:
        """Store a scraped document, versioning it against the active row.

        Raises:
            PersistenceError: If the database rejects the write, including a
                concurrent writer claiming the active slot for this URL.
        """
        async with self._lock_for(draft.source_url):
            try:
                async with self._pool.acquire() as conn, conn.transaction():
                    return await self._upsert(conn, draft)
            except asyncpg.PostgresError as e:
                raise PersistenceError(
                    f"Failed to store {draft.source_url}: {type(e).__name__}: {e}"
                ) from e

    async def get(self, document_id: UUID) -> RegulatoryDocument | None:
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM regulatory_documents WHERE id = $1",
            document_id,
        )
        return _to_document(row) if row else None

    async def get_active(self, source_url: str) -> RegulatoryDocument | None:
        row = await self._pool.fetchrow(
            f"""
            SELECT {_COLUMNS} FROM regulatory_documents
            WHERE source_url = $1 AND status = 'active'
            """,
            source_url,
        )
        return _to_document(row) if row else None

    async def history(self, source_url: str) -> list[RegulatoryDocument]:
        """All versions of a URL, newest first."""
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM regulatory_documents
            WHERE source_url = $1
            ORDER BY scraped_at DESC, created_at DESC
            """,
            source_url,
        )
        return [_to_document(r) for r in rows]

    async def list_by_category(self, category: str, limit: int = 20) -> list[RegulatoryDocument]:
        """Active documents in a category, most recently scraped first."""
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM regulatory_documents
            WHERE category = $1 AND status = 'active'
            ORDER BY scraped_at DESC
            LIMIT $2
            """,
            category,
            limit,
        )
        return [_to_document(r) for r in rows]

    async def stats(self) -> dict[str, Any]:
        """Active document counts per category and the latest scrape time."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT category, COUNT(*) AS count
                FROM regulatory_documents
                WHERE status = 'active'
                GROUP BY category
                """
            )
            last_updated = await conn.fetchval(
                "SELECT MAX(scraped_at) FROM regulatory_documents"
            )
        by_category = {r["category"]: r["count"] for r in rows}
        return {
            "by_category": by_category,
            "total_documents": sum(by_category.values()),
            "last_updated": last_updated,
        }
