"""Ranked full-text search over active regulatory documents."""

import logging
from typing import Any
from uuid import UUID

import asyncpg

from regwatch.db.models import SearchFilters, SearchResult

logger = logging.getLogger(__name__)

# ts_headline options for bounded excerpts around matched terms
_HEADLINE_OPTIONS = "MaxWords=50, MinWords=20, MaxFragments=1"


def build_search_query(query: str, filters: SearchFilters) -> tuple[str, list[Any]]:
    """Build the ranked search SQL and its parameters.

    Only active documents participate. Country is an equality filter,
    categories are ORed within the list, and all dimensions are ANDed.
    """
    # $1=query, $2=limit, $3+=optional filters
    conditions = [
        "d.search_vector @@ plainto_tsquery('english', $1)",
        "d.status = 'active'",
    ]
    params: list[Any] = [query, filters.limit]
    idx = 3

    if filters.country:
        conditions.append(f"d.country = ${idx}")
        params.append(filters.country)
        idx += 1

    if filters.category:
        conditions.append(f"d.category = ANY(${idx}::text[])")
        params.append(list(filters.category))
        idx += 1

    if filters.date_from:
        conditions.append(f"d.effective_date >= ${idx}")
        params.append(filters.date_from)
        idx += 1

    if filters.date_to:
        conditions.append(f"d.effective_date <= ${idx}")
        params.append(filters.date_to)
        idx += 1

    where_clause = " AND ".join(conditions)

    sql = f"""
        SELECT d.id AS document_id, d.title, d.source_url, d.category, d.country,
               ts_rank(d.search_vector, plainto_tsquery('english', $1)) AS rank,
               ts_headline('english', coalesce(d.extracted_text, ''),
                           plainto_tsquery('english', $1),
                           '{_HEADLINE_OPTIONS}') AS excerpt,
               d.effective_date, d.metadata
        FROM regulatory_documents d
        WHERE {where_clause}
        ORDER BY rank DESC, d.scraped_at DESC
        LIMIT $2
    """
    return sql, params


class RegulatorySearch:
    """Postgres full-text search with ts_rank ordering and ts_headline excerpts."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def search(
        self, query: str, filters: SearchFilters | None = None
    ) -> list[SearchResult]:
        """Return active documents matching ``query``, best match first.

        Args:
            query: Free-text query; normalised by plainto_tsquery.
            filters: Optional country/category/date/limit filters.

        Returns:
            Results in strictly non-increasing relevance order.
        """
        if not query.strip():
            return []
        filters = filters or SearchFilters()
        sql, params = build_search_query(query, filters)

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(sql, *params)

        results = [
            SearchResult(
                document_id=UUID(str(r["document_id"])),
                title=r["title"],
                source_url=r["source_url"],
                category=r["category"],
                country=r["country"],
                relevance_score=float(r["rank"]),
                excerpt=r["excerpt"] or "",
                effective_date=r["effective_date"],
                metadata=r["metadata"],
            )
            for r in rows
        ]
        logger.info("Search %r returned %d results", query[:80], len(results))
        return results

    async def similar(self, document_id: UUID, limit: int = 5) -> list[SearchResult]:
        """Documents related to ``document_id``, found by searching its title."""
        title = await self._pool.fetchval(
            "SELECT title FROM regulatory_documents WHERE id = $1",
            document_id,
        )
        if not title:
            return []

        results = await self.search(title, SearchFilters(limit=limit + 1))
        return [r for r in results if r.document_id != document_id][:limit]
