"""API routes for regulatory scraping, search and answer confidence."""

import logging
import secrets
from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config.settings import settings
from regwatch.db.models import (
    Category,
    ConfidenceAssessment,
    JobFilters,
    Priority,
    RegulatoryDocument,
    ScrapeJob,
    SearchFilters,
    SearchResult,
    ToolCallEvidence,
)
from regwatch.llm.confidence import assess_response

logger = logging.getLogger(__name__)

router = APIRouter()

_DEFAULT_SEARCH_LIMIT = 10
_MAX_SEARCH_LIMIT = 50
_DEFAULT_JOB_LIMIT = 20
_DEFAULT_DOCUMENT_LIMIT = 20


class ScrapeRequest(BaseModel):
    """Request body for starting a scrape job. All filters are optional."""

    country: str | None = None
    category: Category | None = None
    priority: Priority | None = None


class JobResponse(BaseModel):
    """Summary of a scrape job run."""

    job_id: UUID
    status: str
    documents_scraped: int
    documents_updated: int
    documents_archived: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None

    @classmethod
    def from_job(cls, job: ScrapeJob) -> "JobResponse":
        return cls(
            job_id=job.id,
            status=job.status,
            documents_scraped=job.documents_scraped,
            documents_updated=job.documents_updated,
            documents_archived=job.documents_archived,
            started_at=job.started_at,
            completed_at=job.completed_at,
            error_message=job.error_message,
        )


class SearchResponse(BaseModel):
    """Response from the /regulatory/search endpoint."""

    query: str
    filters: SearchFilters
    count: int
    results: list[SearchResult]


class RefreshRequest(BaseModel):
    """Request body for refreshing a few sources per category."""

    categories: list[Category] = Field(min_length=1)
    limit_per_category: int = Field(2, ge=1, le=20)


class ConfidenceRequest(BaseModel):
    """Request body for scoring one AI response turn."""

    response_text: str
    tool_calls: list[ToolCallEvidence] = []
    threshold: float | None = None


def _summary(document: RegulatoryDocument) -> dict[str, Any]:
    return document.model_dump(mode="json", exclude={"content", "extracted_text"})


@router.get("/health")
async def health(request: Request) -> dict:  # type: ignore[type-arg]
    """Health check endpoint with optional document stats."""
    result: dict[str, object] = {"status": "ok"}
    store = getattr(request.app.state, "store", None)
    if store is not None:
        try:
            result["documents"] = await store.stats()
        except Exception:
            logger.exception("Failed to get document stats")
    return result


@router.post("/regulatory/scrape", response_model=JobResponse)
async def start_scrape(body: ScrapeRequest, request: Request) -> JobResponse:
    """Run a scrape job over the catalogue sources matching the filters."""
    runner = request.app.state.job_runner
    filters = JobFilters(country=body.country, category=body.category, priority=body.priority)
    logger.info("Scrape job requested with filters %s", filters.model_dump(exclude_none=True))
    job = await runner.run(filters, deadline=settings.job_deadline_seconds)
    return JobResponse.from_job(job)


@router.get("/regulatory/scrape")
async def recent_jobs(
    request: Request,
    limit: int = Query(_DEFAULT_JOB_LIMIT, ge=1, le=100),
) -> dict[str, list[ScrapeJob]]:
    """Most recent scrape jobs, newest first."""
    jobs = await request.app.state.jobs.list_recent(limit)
    return {"jobs": jobs}


@router.post("/regulatory/refresh")
async def refresh(body: RefreshRequest, request: Request) -> dict[str, int]:
    """Re-ingest the first sources of each category without a job record."""
    logger.info("Refresh requested for %s", body.categories)
    return await request.app.state.job_runner.refresh_categories(
        list(body.categories), limit_per_category=body.limit_per_category
    )


@router.get("/regulatory/search", response_model=SearchResponse)
async def search(
    request: Request,
    q: str = Query(..., min_length=1, description="Search query"),
    country: str | None = None,
    category: str | None = Query(None, description="Comma-separated categories"),
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = Query(_DEFAULT_SEARCH_LIMIT, ge=1),
) -> SearchResponse:
    """Full-text search over active regulatory documents."""
    categories = [c.strip() for c in category.split(",") if c.strip()] if category else None
    filters = SearchFilters(
        country=country,
        category=categories or None,
        date_from=date_from,
        date_to=date_to,
        limit=min(limit, _MAX_SEARCH_LIMIT),
    )
    results = await request.app.state.search.search(q, filters)
    return SearchResponse(query=q, filters=filters, count=len(results), results=results)


@router.get("/regulatory/documents")
async def documents_by_category(
    request: Request,
    category: Category,
    limit: int = Query(_DEFAULT_DOCUMENT_LIMIT, ge=1, le=100),
) -> dict[str, Any]:
    """Active documents in a category, most recently scraped first."""
    documents = await request.app.state.store.list_by_category(category, limit=limit)
    return {
        "category": category,
        "count": len(documents),
        "documents": [_summary(d) for d in documents],
    }


@router.get("/regulatory/documents/active")
async def active_document(
    request: Request, url: str = Query(..., min_length=1)
) -> JSONResponse:
    """The current active version stored for a source URL."""
    document = await request.app.state.store.get_active(url)
    if document is None:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    return JSONResponse(document.model_dump(mode="json", exclude={"content"}))


@router.get("/regulatory/documents/{document_id}/similar")
async def similar_documents(
    document_id: UUID,
    request: Request,
    limit: int = Query(5, ge=1, le=_MAX_SEARCH_LIMIT),
) -> dict[str, Any]:
    """Documents related to the given one, excluding itself."""
    results = await request.app.state.search.similar(document_id, limit=limit)
    return {"document_id": document_id, "count": len(results), "results": results}


@router.get("/regulatory/documents/{document_id}/history")
async def document_history(document_id: UUID, request: Request) -> JSONResponse:
    """Every stored version of the document's source URL, newest first."""
    store = request.app.state.store
    document = await store.get(document_id)
    if document is None:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    versions = await store.history(document.source_url)
    return JSONResponse(
        {
            "source_url": document.source_url,
            "versions": [_summary(v) for v in versions],
        }
    )


@router.get("/regulatory/stats")
async def stats(request: Request) -> dict[str, Any]:
    """Active document counts per category and the last scrape time."""
    return await request.app.state.store.stats()


@router.post("/regulatory/confidence", response_model=ConfidenceAssessment)
async def confidence(body: ConfidenceRequest) -> ConfidenceAssessment:
    """Score an AI response turn and decide whether it needs human review."""
    threshold = body.threshold if body.threshold is not None else settings.review_threshold
    return assess_response(body.tool_calls, body.response_text, threshold)


@router.get("/cron/regulatory-sync")
async def cron_sync(request: Request) -> JSONResponse:
    """Scheduled sync, authenticated with the CRON_SECRET bearer token."""
    auth = request.headers.get("Authorization", "")
    expected = f"Bearer {settings.cron_secret}"
    if not settings.cron_secret or not secrets.compare_digest(auth, expected):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    logger.info("Scheduled regulatory sync started")
    filters = JobFilters(
        country=settings.cron_country or None,
        priority=settings.cron_priority or None,  # type: ignore[arg-type]
    )
    job = await request.app.state.job_runner.run(
        filters, deadline=settings.job_deadline_seconds
    )
    return JSONResponse(JobResponse.from_job(job).model_dump(mode="json"))
