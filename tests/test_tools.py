"""Tests for the regulatory_search agent tool."""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from regwatch.db.models import SearchResult
from regwatch.llm.tools import MAX_TOOL_RESULTS, REGULATORY_SEARCH, RegulatorySearchTool


def _result(title: str = "Minimum wages", score: float = 0.8) -> SearchResult:
    return SearchResult(
        document_id=uuid4(),
        title=title,
        source_url="https://www.fairwork.gov.au/pay-and-wages/minimum-wages",
        category="award",
        country="AU",
        relevance_score=score,
        excerpt="The national minimum wage is $24.10 per hour",
        effective_date=date(2024, 7, 1),
    )


@pytest.fixture
def mock_search() -> AsyncMock:
    search = AsyncMock()
    search.search.return_value = [_result(), _result("Award rates", 0.5)]
    return search


def test_tool_definition_shape() -> None:
    function = REGULATORY_SEARCH["function"]
    assert function["name"] == "regulatory_search"
    assert function["parameters"]["required"] == ["query"]
    assert "all" in function["parameters"]["properties"]["category"]["enum"]


@pytest.mark.asyncio
async def test_run_formats_results(mock_search: AsyncMock) -> None:
    result = await RegulatorySearchTool(mock_search).run("minimum wage")

    assert result["success"] is True
    assert result["count"] == 2
    first = result["results"][0]
    assert first == {
        "title": "Minimum wages",
        "url": "https://www.fairwork.gov.au/pay-and-wages/minimum-wages",
        "category": "award",
        "excerpt": "The national minimum wage is $24.10 per hour",
        "relevance_score": 0.8,
        "effective_date": "2024-07-01",
    }
    assert "Found 2 relevant regulatory documents" in result["message"]


@pytest.mark.asyncio
async def test_run_caps_limit_and_scopes_country(mock_search: AsyncMock) -> None:
    await RegulatorySearchTool(mock_search, country="NZ").run("PAYE", limit=50)

    filters = mock_search.search.call_args[0][1]
    assert filters.limit == MAX_TOOL_RESULTS
    assert filters.country == "NZ"
    assert filters.category is None


@pytest.mark.asyncio
async def test_run_category_filter(mock_search: AsyncMock) -> None:
    await RegulatorySearchTool(mock_search).run("payroll tax", category="payroll_tax", limit=0)

    filters = mock_search.search.call_args[0][1]
    assert filters.category == ["payroll_tax"]
    assert filters.limit == 5


@pytest.mark.asyncio
async def test_run_no_results(mock_search: AsyncMock) -> None:
    mock_search.search.return_value = []

    result = await RegulatorySearchTool(mock_search).run("long service leave")

    assert result["success"] is True
    assert result["count"] == 0
    assert "No regulatory documents found" in result["message"]


@pytest.mark.asyncio
async def test_run_failure_is_returned(mock_search: AsyncMock) -> None:
    mock_search.search.side_effect = RuntimeError("database down")

    result = await RegulatorySearchTool(mock_search).run("minimum wage")

    assert result["success"] is False
    assert result["results"] == []
    assert "database down" in result["message"]


@pytest.mark.asyncio
async def test_execute_from_arguments(mock_search: AsyncMock) -> None:
    result = await RegulatorySearchTool(mock_search).execute(
        {"query": "super guarantee", "category": "tax_ruling", "limit": 1}
    )

    assert result["success"] is True
    query, filters = mock_search.search.call_args[0]
    assert query == "super guarantee"
    assert filters.limit == 1
