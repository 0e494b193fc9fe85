"""Per-source ingestion: fetch -> extract -> summarize -> version and store.

A source's failure at any stage is captured in its IngestOutcome and never
raised, so one bad page cannot affect its siblings in a job.
"""

import logging
from datetime import date, datetime

from regwatch.db.documents import DocumentStore
from regwatch.db.models import (
    DocumentDraft,
    FetchedPage,
    FetchFailure,
    IngestOutcome,
    RegulatorySummary,
    SourceDescriptor,
)
from regwatch.ingestion.crawler import Crawler
from regwatch.ingestion.extractor import count_tokens, extract_text
from regwatch.ingestion.summarizer import Summarizer

logger = logging.getLogger(__name__)

_METADATA_VERSION = "v1"


def parse_effective_date(value: str | None) -> date | None:
    """Parse an ISO date/datetime string from the summarizer, else None."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        logger.debug("Ignoring unparseable effective date: %r", value)
        return None


def build_document_draft(
    source: SourceDescriptor,
    page: FetchedPage,
    extracted_text: str,
    summary: RegulatorySummary | None,
) -> DocumentDraft:
    """Assemble a storable document from a fetched page and optional summary.

    Title precedence: summary title, then the page <title>, then the
    catalogue subsection.
    """
    metadata = None
    effective_date = None
    if summary is not None:
        metadata = {
            "summary": summary.summary,
            "obligations": summary.obligations,
            "citations": [c.model_dump(mode="json") for c in summary.citations],
            "regulatory_version": _METADATA_VERSION,
        }
        effective_date = parse_effective_date(summary.effective_date)

    title = (summary.title if summary else None) or page.title or source.subsection
    return DocumentDraft(
        country=source.country,
        category=source.category,
        title=title or source.url,
        source_url=source.url,
        content=page.html,
        extracted_text=extracted_text,
        token_count=count_tokens(extracted_text),
        effective_date=effective_date,
        metadata=metadata,
        scraped_at=page.fetched_at,
    )


class IngestionPipeline:
    """Runs one catalogue source through fetching, summarizing and storage."""

    def __init__(
        self,
        crawler: Crawler,
        store: DocumentStore,
        summarizer: Summarizer | None = None,
    ) -> None:
        self.crawler = crawler
        self.store = store
        self.summarizer = summarizer

    async def process_source(self, source: SourceDescriptor) -> IngestOutcome:
        """Process a single source and report what happened to it."""
        try:
            page = await self.crawler.fetch(source.url)
            if isinstance(page, FetchFailure):
                return IngestOutcome(url=source.url, action="failed", error=page.message)

            extracted_text = extract_text(page.html)
            summary = None
            if self.summarizer is not None:
                summary = await self.summarizer.summarize(source, extracted_text)

            draft = build_document_draft(source, page, extracted_text, summary)
            result = await self.store.upsert(draft)
        except Exception as e:
            logger.exception("Failed to process %s", source.url)
            return IngestOutcome(url=source.url, action="failed", error=str(e))

        return IngestOutcome(
            url=source.url, action=result.action, document_id=result.document_id
        )
