"""Scrape job run log (regulatory_scrape_jobs table).

Jobs move forward only: pending -> in_progress -> completed | failed, with
pending -> failed allowed for jobs that never start. Transitions are
enforced in the UPDATE's WHERE clause, so a stale writer cannot move a
finished job backwards.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import asyncpg

from regwatch.db.models import JobCounters, JobFilters, JobStatus, ScrapeJob
from regwatch.errors import PersistenceError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"in_progress", "failed"}),
    "in_progress": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}

_COLUMNS = """
    id, country, category, priority, status, started_at, completed_at,
    documents_scraped, documents_updated, documents_archived,
    error_message, metadata, created_at
"""


def can_transition(current: str, new: str) -> bool:
    """Whether a job may move from ``current`` to ``new``."""
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def _sources_from(target: str) -> list[str]:
    return [s for s, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def _counter_metadata(counters: JobCounters, sources_total: int | None) -> dict[str, Any]:
    metadata: dict[str, Any] = counters.model_dump()
    if sources_total is not None:
        metadata["sources_total"] = sources_total
    return metadata


def _to_job(row: Any) -> ScrapeJob:
    return ScrapeJob(**dict(row))


class JobRepository:
    """Persistence for scrape job records."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def create(self, filters: JobFilters) -> ScrapeJob:
        """Insert a new pending job with a snapshot of its filters."""
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO regulatory_scrape_jobs (country, category, priority, status)
            VALUES ($1, $2, $3, 'pending')
            RETURNING {_COLUMNS}
            """,
            filters.country,
            filters.category,
            filters.priority,
        )
        return _to_job(row)

    async def start(self, job_id: UUID) -> ScrapeJob:
        """Move a pending job to in_progress and stamp started_at."""
        row = await self._pool.fetchrow(
            f"""
            UPDATE regulatory_scrape_jobs
            SET status = 'in_progress', started_at = $2
            WHERE id = $1 AND status = ANY($3::text[])
            RETURNING {_COLUMNS}
            """,
            job_id,
            datetime.now(UTC),
            _sources_from("in_progress"),
        )
        if row is None:
            raise PersistenceError(f"Job {job_id} cannot move to in_progress")
        return _to_job(row)

    async def record_progress(
        self, job_id: UUID, counters: JobCounters, sources_total: int | None = None
    ) -> None:
        """Persist running counters so progress is visible mid-run."""
        try:
            await self._pool.execute(
                """
                UPDATE regulatory_scrape_jobs
                SET documents_scraped = $2,
                    documents_updated = $3,
                    documents_archived = $4,
                    metadata = $5
                WHERE id = $1 AND status = 'in_progress'
                """,
                job_id,
                counters.documents_scraped,
                counters.updated,
                counters.documents_archived,
                _counter_metadata(counters, sources_total),
            )
        except asyncpg.PostgresError as e:
            raise PersistenceError(f"Failed to record progress for job {job_id}: {e}") from e

    async def finish(
        self,
        job_id: UUID,
        status: JobStatus,
        counters: JobCounters,
        sources_total: int | None = None,
        error_message: str | None = None,
    ) -> ScrapeJob:
        """Move a job to a terminal status with its final aggregates."""
        if status not in ("completed", "failed"):
            raise ValueError(f"Not a terminal job status: {status}")
        row = await self._pool.fetchrow(
            f"""
            UPDATE regulatory_scrape_jobs
            SET status = $2,
                completed_at = $3,
                documents_scraped = $4,
                documents_updated = $5,
                documents_archived = $6,
                error_message = $7,
                metadata = $8
            WHERE id = $1 AND status = ANY($9::text[])
            RETURNING {_COLUMNS}
            """,
            job_id,
            status,
            datetime.now(UTC),
            counters.documents_scraped,
            counters.updated,
            counters.documents_archived,
            error_message,
            _counter_metadata(counters, sources_total),
            _sources_from(status),
        )
        if row is None:
            raise PersistenceError(f"Job {job_id} cannot move to {status}")
        return _to_job(row)

    async def get(self, job_id: UUID) -> ScrapeJob | None:
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM regulatory_scrape_jobs WHERE id = $1",
            job_id,
        )
        return _to_job(row) if row else None

    async def list_recent(self, limit: int = 20) -> list[ScrapeJob]:
        """Most recently created jobs first."""
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM regulatory_scrape_jobs
            ORDER BY created_at DESC
            LIMIT $1
            """,
            limit,
        )
        return [_to_job(r) for r in rows]
