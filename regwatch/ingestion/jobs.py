"""Scrape job orchestration over the source catalogue.

A job resolves its sources from the catalogue, runs each one through the
ingestion pipeline, persists counters after every source and finishes as
``completed`` even when individual sources fail. Only resolution or
infrastructure failures, deadlines and cancellation end a job ``failed``.
"""

import asyncio
import logging
from collections.abc import Callable
from uuid import UUID

from regwatch.db.jobs import JobRepository
from regwatch.db.models import (
    IngestOutcome,
    JobCounters,
    JobFilters,
    ScrapeJob,
    SourceDescriptor,
)
from regwatch.errors import JobResolutionError, PersistenceError
from regwatch.ingestion.catalogue import filter_sources, parse_catalogue
from regwatch.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

CatalogueLoader = Callable[[], list[SourceDescriptor]]


def group_by_url(sources: list[SourceDescriptor]) -> list[list[SourceDescriptor]]:
    """Group sources sharing a URL, preserving first-seen order."""
    groups: dict[str, list[SourceDescriptor]] = {}
    for source in sources:
        groups.setdefault(source.url, []).append(source)
    return list(groups.values())


class ScrapeJobRunner:
    """Drives catalogue sources through the pipeline under a job record."""

    def __init__(
        self,
        jobs: JobRepository,
        pipeline: IngestionPipeline,
        catalogue_loader: CatalogueLoader = parse_catalogue,
    ) -> None:
        self._jobs = jobs
        self._pipeline = pipeline
        self._load_catalogue = catalogue_loader

    def resolve_sources(self, filters: JobFilters) -> list[SourceDescriptor]:
        """Intersect the catalogue with every supplied filter.

        Raises:
            JobResolutionError: If filters were supplied and nothing matched.
        """
        sources = filter_sources(self._load_catalogue(), filters)
        if not sources and not filters.is_empty():
            raise JobResolutionError(
                "No sources found matching filters: "
                f"{filters.model_dump(exclude_none=True)}"
            )
        return sources

    async def _record(
        self,
        job_id: UUID,
        outcome: IngestOutcome,
        counters: JobCounters,
        sources_total: int,
    ) -> None:
        counters.record(outcome.action)
        if outcome.action == "failed":
            logger.warning("Source failed: %s (%s)", outcome.url, outcome.error)
        try:
            await self._jobs.record_progress(job_id, counters, sources_total)
        except PersistenceError:
            logger.warning("Could not persist progress for job %s", job_id, exc_info=True)

    async def _process_sequential(
        self, job_id: UUID, sources: list[SourceDescriptor], counters: JobCounters
    ) -> None:
        for source in sources:
            outcome = await self._pipeline.process_source(source)
            await self._record(job_id, outcome, counters, len(sources))

    async def _process_concurrent(
        self,
        job_id: UUID,
        sources: list[SourceDescriptor],
        counters: JobCounters,
        concurrency: int,
    ) -> None:
        # Distinct URLs run in parallel; repeats of one URL stay sequential.
        # Fetches still pass through the crawler's single shared rate limiter.
        semaphore = asyncio.Semaphore(concurrency)
        record_lock = asyncio.Lock()

        async def worker(group: list[SourceDescriptor]) -> None:
            async with semaphore:
                for source in group:
                    outcome = await self._pipeline.process_source(source)
                    async with record_lock:
                        await self._record(job_id, outcome, counters, len(sources))

        async with asyncio.TaskGroup() as tg:
            for group in group_by_url(sources):
                tg.create_task(worker(group))

    async def run(
        self,
        filters: JobFilters | None = None,
        deadline: float | None = None,
        concurrency: int = 1,
    ) -> ScrapeJob:
        """Run a scrape job to a terminal state and return the final record.

        Args:
            filters: Optional country/category/priority filters (ANDed).
            deadline: Optional wall-clock budget in seconds for the source loop.
            concurrency: Maximum distinct URLs processed at once.
        """
        filters = filters or JobFilters()
        job = await self._jobs.create(filters)
        logger.info("Starting scrape job %s with filters %s", job.id, filters.model_dump())
        counters = JobCounters()

        try:
            await self._jobs.start(job.id)
            sources = self.resolve_sources(filters)
        except JobResolutionError as e:
            logger.warning("Scrape job %s: %s", job.id, e)
            return await self._jobs.finish(job.id, "failed", counters, 0, error_message=str(e))
        except asyncio.CancelledError:
            logger.warning("Scrape job %s cancelled before processing", job.id)
            await asyncio.shield(
                self._jobs.finish(job.id, "failed", counters, error_message="Cancelled")
            )
            raise
        except Exception as e:
            logger.exception("Scrape job %s failed before processing", job.id)
            return await self._jobs.finish(job.id, "failed", counters, error_message=str(e))

        total = len(sources)
        logger.info("Found %d sources to process", total)

        try:
            async with asyncio.timeout(deadline):
                if concurrency > 1:
                    await self._process_concurrent(job.id, sources, counters, concurrency)
                else:
                    await self._process_sequential(job.id, sources, counters)
        except TimeoutError:
            done = counters.documents_scraped + counters.failed
            message = (
                f"Cancelled: deadline of {deadline}s exceeded after {done} of {total} sources"
            )
            logger.warning("Scrape job %s %s", job.id, message)
            return await self._jobs.finish(
                job.id, "failed", counters, total, error_message=message
            )
        except asyncio.CancelledError:
            logger.warning("Scrape job %s cancelled", job.id)
            await asyncio.shield(
                self._jobs.finish(
                    job.id, "failed", counters, total, error_message="Cancelled"
                )
            )
            raise
        except Exception as e:
            logger.exception("Scrape job %s aborted", job.id)
            return await self._jobs.finish(
                job.id, "failed", counters, total, error_message=str(e)
            )

        finished = await self._jobs.finish(job.id, "completed", counters, total)
        logger.info(
            "Scrape job %s completed: %d created, %d updated, %d unchanged, %d failed",
            job.id,
            counters.created,
            counters.updated,
            counters.unchanged,
            counters.failed,
        )
        return finished

    async def refresh_categories(
        self, categories: list[str], limit_per_category: int = 2
    ) -> dict[str, int]:
        """Refresh up to N sources per category without a job record."""
        catalogue = self._load_catalogue()
        queue: list[SourceDescriptor] = []
        for category in categories:
            matches = [s for s in catalogue if s.category == category]
            queue.extend(matches[:limit_per_category])

        counters = JobCounters()
        if not queue:
            logger.warning("No sources available for refresh: %s", categories)
            return {"processed": 0, **counters.model_dump()}

        for source in queue:
            outcome = await self._pipeline.process_source(source)
            counters.record(outcome.action)

        return {"processed": len(queue), **counters.model_dump()}
