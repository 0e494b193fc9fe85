"""Pydantic models for database rows and pipeline data structures."""

import hashlib
from datetime import date, datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, HttpUrl, field_validator

Category = Literal["award", "tax_ruling", "payroll_tax", "custom"]
Priority = Literal["high", "medium", "low"]
UpdateFrequency = Literal["daily", "weekly", "monthly", "quarterly"]
DocumentStatus = Literal["active", "superseded"]
JobStatus = Literal["pending", "in_progress", "completed", "failed"]
IngestAction = Literal["created", "updated", "unchanged", "failed"]


def content_hash(text: str) -> str:
    """SHA256 of extracted text, used as the change-detection key."""
    return hashlib.sha256(text.encode()).hexdigest()


# --- Source catalogue ---


class SourceDescriptor(BaseModel):
    """A catalogue entry describing one regulatory page to fetch."""

    model_config = ConfigDict(frozen=True)

    country: str = Field(min_length=2, max_length=2)
    section: str = ""
    subsection: str = ""
    source_type: str = "web_scraping"
    url: str = Field(min_length=1)
    update_frequency: UpdateFrequency = "weekly"
    priority: Priority
    category: Category


class JobFilters(BaseModel):
    """Source filters for a scrape job. Supplied dimensions are ANDed."""

    country: str | None = None
    category: Category | None = None
    priority: Priority | None = None

    @field_validator("country")
    @classmethod
    def _upper_country(cls, value: str | None) -> str | None:
        return value.upper() if value is not None else None

    def is_empty(self) -> bool:
        return self.country is None and self.category is None and self.priority is None

    def matches(self, source: SourceDescriptor) -> bool:
        if self.country is not None and source.country != self.country:
            return False
        if self.category is not None and source.category != self.category:
            return False
        return self.priority is None or source.priority == self.priority


# --- Fetching ---


class FetchedPage(BaseModel):
    """A successfully fetched source page."""

    ok: Literal[True] = True
    url: str
    final_url: str
    status_code: int
    content_type: str = "unknown"
    html: str
    title: str | None = None
    fetched_at: datetime


class FetchFailure(BaseModel):
    """A fetch that produced no usable page."""

    ok: Literal[False] = False
    url: str
    kind: Literal["network", "timeout", "http_status", "empty_body"]
    message: str
    status_code: int | None = None


FetchOutcome = FetchedPage | FetchFailure


# --- Summarizer output ---


class SummaryCitation(BaseModel):
    """A citation extracted by the summarizer."""

    label: str = Field(min_length=1)
    url: HttpUrl | None = None


class RegulatorySummary(BaseModel):
    """Structured summary of a regulatory page, produced by the LLM."""

    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    obligations: list[str] = Field(min_length=1, max_length=10)
    effective_date: str | None = None
    citations: list[SummaryCitation] = Field(default_factory=list, max_length=10)


# --- Database row models ---


class DocumentDraft(BaseModel):
    """A freshly scraped document, not yet persisted."""

    country: str
    category: str
    title: str
    source_url: str
    content: str
    extracted_text: str
    token_count: int = 0
    effective_date: date | None = None
    metadata: dict[str, Any] | None = None
    scraped_at: datetime

    @property
    def content_hash(self) -> str:
        return content_hash(self.extracted_text)


class RegulatoryDocument(BaseModel):
    """A versioned regulatory document (maps to regulatory_documents table)."""

    id: UUID
    country: str
    category: str
    title: str
    source_url: str
    content: str | None = None
    extracted_text: str | None = None
    content_hash: str | None = None
    token_count: int = 0
    effective_date: date | None = None
    expiry_date: datetime | None = None
    status: DocumentStatus = "active"
    scraped_at: datetime
    last_checked_at: datetime
    metadata: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class UpsertResult(BaseModel):
    """Outcome of a versioning decision for one source URL."""

    action: Literal["created", "updated", "unchanged"]
    document_id: UUID
    previous_id: UUID | None = None  # superseded row, for "updated"


class IngestOutcome(BaseModel):
    """Result of processing a single source through the pipeline."""

    url: str
    action: IngestAction
    document_id: UUID | None = None
    error: str | None = None


class JobCounters(BaseModel):
    """Per-action tallies for a scrape run."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0

    def record(self, action: IngestAction) -> None:
        setattr(self, action, getattr(self, action) + 1)

    @property
    def documents_scraped(self) -> int:
        return self.created + self.updated + self.unchanged

    @property
    def documents_archived(self) -> int:
        # Every update supersedes exactly one previously active row
        return self.updated


class ScrapeJob(BaseModel):
    """A scrape run (maps to regulatory_scrape_jobs table)."""

    id: UUID
    country: str | None = None
    category: str | None = None
    priority: str | None = None
    status: JobStatus = "pending"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    documents_scraped: int = 0
    documents_updated: int = 0
    documents_archived: int = 0
    error_message: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime


# --- Search ---


class SearchFilters(BaseModel):
    """Optional filters for full-text search."""

    country: str | None = None
    category: list[str] | None = None
    date_from: date | None = None
    date_to: date | None = None
    limit: int = Field(default=10, ge=1)


class SearchResult(BaseModel):
    """A single ranked hit over active documents."""

    document_id: UUID
    title: str
    source_url: str
    category: str
    country: str
    relevance_score: float
    excerpt: str
    effective_date: date | None = None
    metadata: dict[str, Any] | None = None


# --- Tool-call evidence and confidence ---


class SearchHit(BaseModel):
    """One result returned by a regulatory search tool invocation."""

    title: str = ""
    url: str | None = None
    category: str | None = None
    excerpt: str | None = None
    relevance_score: float | None = Field(
        default=None,
        validation_alias=AliasChoices("relevance_score", "relevanceScore"),
    )


class RegulatorySearchCall(BaseModel):
    """Evidence from a regulatory_search tool call."""

    kind: Literal["regulatory_search"] = "regulatory_search"
    tool_name: str = "regulatory_search"
    success: bool = False
    results: list[SearchHit] = []


class ExternalDataCall(BaseModel):
    """Evidence from an accounting-system lookup (e.g. xero_* tools)."""

    kind: Literal["external_data"] = "external_data"
    tool_name: str
    success: bool = True


class OtherToolCall(BaseModel):
    """Any other tool invocation; carries no weight in scoring."""

    kind: Literal["other"] = "other"
    tool_name: str


ToolCallEvidence = Annotated[
    RegulatorySearchCall | ExternalDataCall | OtherToolCall,
    Field(discriminator="kind"),
]


class Citation(BaseModel):
    """A cited regulatory source."""

    title: str
    url: str
    category: str | None = None


class ConfidenceAssessment(BaseModel):
    """Escalation decision for one AI response turn."""

    score: float = Field(ge=0.0, le=1.0)
    citations: list[Citation]
    needs_review: bool
