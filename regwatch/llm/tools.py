"""Regulatory search tool for LLM function calling (OpenAI format)."""

import logging
from typing import Any

from regwatch.db.models import SearchFilters
from regwatch.rag.search import RegulatorySearch

logger = logging.getLogger(__name__)

REGULATORY_SEARCH_TOOL_NAME = "regulatory_search"

# Hard cap on results returned to an agent, whatever it asks for
MAX_TOOL_RESULTS = 10

REGULATORY_SEARCH: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": REGULATORY_SEARCH_TOOL_NAME,
        "description": (
            "Search official regulatory documents: employment law (awards, "
            "minimum wages), tax rulings (PAYG withholding, superannuation) "
            "and state payroll tax. Use this for questions about pay "
            "conditions, tax obligations, thresholds and compliance "
            "requirements. Returns citations to government sources with "
            "excerpts and relevance scores, best match first."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": (
                        "Natural language description of the regulatory "
                        "information needed, e.g. 'minimum wage', "
                        "'superannuation guarantee rate', 'payroll tax NSW'."
                    ),
                },
                "category": {
                    "type": "string",
                    "enum": ["award", "tax_ruling", "payroll_tax", "all"],
                    "description": (
                        "Optional: 'award' for employment law, 'tax_ruling' "
                        "for tax office guidance, 'payroll_tax' for state "
                        "taxes, or 'all' (default)."
                    ),
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum results to return (1-10, default 5).",
                },
            },
            "required": ["query"],
        },
    },
}

TOOLS: list[dict[str, Any]] = [REGULATORY_SEARCH]


class RegulatorySearchTool:
    """Bounded regulatory search for a jurisdiction-specific assistant."""

    name = REGULATORY_SEARCH_TOOL_NAME

    def __init__(self, search: RegulatorySearch, country: str | None = "AU") -> None:
        self._search = search
        self.country = country

    async def run(
        self, query: str, category: str | None = "all", limit: int | None = 5
    ) -> dict[str, Any]:
        """Execute a search and format the results for the model.

        Never raises: search failures come back as ``success: False``.
        """
        capped_limit = max(1, min(limit or 5, MAX_TOOL_RESULTS))
        categories = None if category in (None, "all") else [category]
        logger.info(
            "Executing tool=%s query=%r category=%s limit=%d",
            self.name,
            query,
            category,
            capped_limit,
        )

        try:
            results = await self._search.search(
                query,
                SearchFilters(country=self.country, category=categories, limit=capped_limit),
            )
        except Exception as e:
            logger.exception("regulatory_search tool failed")
            return {
                "success": False,
                "count": 0,
                "results": [],
                "message": f"Search failed: {e}",
            }

        formatted = [
            {
                "title": r.title,
                "url": r.source_url,
                "category": r.category,
                "excerpt": r.excerpt,
                "relevance_score": r.relevance_score,
                "effective_date": r.effective_date.isoformat() if r.effective_date else None,
            }
            for r in results
        ]
        if formatted:
            plural = "" if len(formatted) == 1 else "s"
            message = (
                f"Found {len(formatted)} relevant regulatory document{plural}. "
                "Use these official sources to provide accurate compliance information."
            )
        else:
            message = (
                f'No regulatory documents found matching "{query}". '
                "Try broadening your search terms."
            )
        return {
            "success": True,
            "count": len(formatted),
            "results": formatted,
            "message": message,
        }

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Run from a decoded tool-call arguments dict."""
        return await self.run(
            query=arguments["query"],
            category=arguments.get("category", "all"),
            limit=arguments.get("limit", 5),
        )
