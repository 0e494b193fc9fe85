"""CLI script for running a regulatory scrape job.

Usage:
    # Scrape every catalogue source
    python scripts/scrape.py

    # High-priority Australian sources only
    python scripts/scrape.py --country AU --priority high

    # Bounded run with three URLs in flight
    python scripts/scrape.py --deadline 600 --concurrency 3

    # Show the matching catalogue entries without fetching anything
    python scripts/scrape.py --category award --list

    # Verbose logging
    python scripts/scrape.py -v
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from regwatch.db.documents import DocumentStore
from regwatch.db.jobs import JobRepository
from regwatch.db.models import JobFilters
from regwatch.db.session import close_pool, get_pool
from regwatch.ingestion.catalogue import filter_sources, parse_catalogue
from regwatch.ingestion.crawler import Crawler
from regwatch.ingestion.jobs import ScrapeJobRunner
from regwatch.ingestion.pipeline import IngestionPipeline
from regwatch.ingestion.summarizer import Summarizer

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape regulatory sources into the store")
    parser.add_argument("--country", help="Two-letter country code, e.g. AU")
    parser.add_argument(
        "--category",
        choices=["award", "tax_ruling", "payroll_tax", "custom"],
        help="Only sources in this category",
    )
    parser.add_argument(
        "--priority", choices=["high", "medium", "low"], help="Only sources at this priority"
    )
    parser.add_argument(
        "--deadline", type=float, help="Abort the job after this many seconds"
    )
    parser.add_argument(
        "--concurrency", type=int, default=1, help="Distinct URLs processed at once"
    )
    parser.add_argument(
        "--no-summary", action="store_true", help="Skip LLM summarization"
    )
    parser.add_argument(
        "--list", action="store_true", help="List matching sources and exit"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser.parse_args()


def list_sources(filters: JobFilters) -> None:
    sources = filter_sources(parse_catalogue(), filters)
    for source in sources:
        print(f"{source.country}  {source.priority:<6}  {source.category:<11}  {source.url}")
    print(f"{len(sources)} source(s)")


async def run(args: argparse.Namespace, filters: JobFilters) -> int:
    pool = await get_pool()
    try:
        summarizer = None if args.no_summary else Summarizer()
        pipeline = IngestionPipeline(Crawler(), DocumentStore(pool), summarizer=summarizer)
        runner = ScrapeJobRunner(JobRepository(pool), pipeline)

        job = await runner.run(filters, deadline=args.deadline, concurrency=args.concurrency)

        logger.info("=" * 60)
        logger.info(
            "Job %s %s: %d scraped, %d updated, %d archived",
            job.id,
            job.status,
            job.documents_scraped,
            job.documents_updated,
            job.documents_archived,
        )
        if job.error_message:
            logger.error("Job error: %s", job.error_message)
        return 0 if job.status == "completed" else 1
    finally:
        await close_pool()


def main() -> None:
    args = parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    filters = JobFilters(
        country=args.country.upper() if args.country else None,
        category=args.category,
        priority=args.priority,
    )
    if args.list:
        list_sources(filters)
        return

    sys.exit(asyncio.run(run(args, filters)))


if __name__ == "__main__":
    main()
