"""Confidence scoring and citation extraction for AI responses.

The score is a transparent heuristic so escalation decisions can be
audited and explained:

    0.5 base
    + min(successful regulatory searches * 0.1, 0.3)
    + average relevance of returned results * 0.2
    + 0.15 if an accounting-system lookup was made
    - min(hedging phrase matches * 0.05, 0.3)
    - 0.1 if the response is shorter than 100 characters

clamped to [0, 1].
"""

import re
from collections.abc import Sequence
from typing import Any

from regwatch.db.models import (
    Citation,
    ConfidenceAssessment,
    ExternalDataCall,
    OtherToolCall,
    RegulatorySearchCall,
    ToolCallEvidence,
)
from regwatch.llm.tools import REGULATORY_SEARCH_TOOL_NAME

BASE_SCORE = 0.5
CITATION_WEIGHT = 0.1
MAX_CITATION_BONUS = 0.3
RELEVANCE_WEIGHT = 0.2
EXTERNAL_DATA_BONUS = 0.15
HEDGE_PENALTY = 0.05
MAX_HEDGE_PENALTY = 0.3
SHORT_RESPONSE_CHARS = 100
SHORT_RESPONSE_PENALTY = 0.1
DEFAULT_REVIEW_THRESHOLD = 0.6

# Tool name prefixes for accounting-system lookups
EXTERNAL_DATA_PREFIXES = ("xero_",)

HEDGING_PHRASES = (
    "not sure",
    "i don't know",
    "might be",
    "could be",
    "possibly",
    "perhaps",
    "uncertain",
    "unclear",
    "i think",
    "i believe",
    "probably",
)

_HEDGING_RES = [re.compile(rf"\b{re.escape(p)}\b") for p in HEDGING_PHRASES]

# Names the regulatory search tool has been exposed under
_SEARCH_TOOL_NAMES = {REGULATORY_SEARCH_TOOL_NAME, "regulatorySearch"}


def parse_tool_call(name: str, result: dict[str, Any] | None = None) -> ToolCallEvidence:
    """Classify a raw tool invocation into typed evidence."""
    if name in _SEARCH_TOOL_NAMES:
        result = result or {}
        return RegulatorySearchCall(
            tool_name=name,
            success=bool(result.get("success")),
            results=result.get("results") or [],
        )
    if name.startswith(EXTERNAL_DATA_PREFIXES):
        return ExternalDataCall(tool_name=name)
    return OtherToolCall(tool_name=name)


def _successful_searches(tool_calls: Sequence[ToolCallEvidence]) -> list[RegulatorySearchCall]:
    return [tc for tc in tool_calls if isinstance(tc, RegulatorySearchCall) and tc.success]


def average_relevance(tool_calls: Sequence[ToolCallEvidence]) -> float:
    """Mean relevance score across all results of successful searches, or 0."""
    scores = [
        hit.relevance_score
        for call in _successful_searches(tool_calls)
        for hit in call.results
        if hit.relevance_score is not None
    ]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def detect_hedging(text: str) -> float:
    """Penalty for hedging language: 0.05 per whole-phrase match, capped at 0.3."""
    lowered = text.replace("\u2019", "'").lower()
    count = sum(len(pattern.findall(lowered)) for pattern in _HEDGING_RES)
    return min(count * HEDGE_PENALTY, MAX_HEDGE_PENALTY)


def calculate_confidence(tool_calls: Sequence[ToolCallEvidence], response_text: str) -> float:
    """Score an AI response turn between 0 and 1."""
    score = BASE_SCORE

    citation_count = len(_successful_searches(tool_calls))
    score += min(citation_count * CITATION_WEIGHT, MAX_CITATION_BONUS)

    score += average_relevance(tool_calls) * RELEVANCE_WEIGHT

    if any(isinstance(tc, ExternalDataCall) for tc in tool_calls):
        score += EXTERNAL_DATA_BONUS

    score -= detect_hedging(response_text)

    if len(response_text) < SHORT_RESPONSE_CHARS:
        score -= SHORT_RESPONSE_PENALTY

    return max(0.0, min(1.0, score))


def requires_human_review(
    confidence: float, threshold: float = DEFAULT_REVIEW_THRESHOLD
) -> bool:
    """True when confidence falls below the review threshold."""
    return confidence < threshold


def extract_citations(tool_calls: Sequence[ToolCallEvidence]) -> list[Citation]:
    """Unique cited sources across successful searches, in first-seen order."""
    citations: list[Citation] = []
    seen_urls: set[str] = set()
    for call in _successful_searches(tool_calls):
        for hit in call.results:
            if hit.url and hit.url not in seen_urls:
                seen_urls.add(hit.url)
                citations.append(Citation(title=hit.title, url=hit.url, category=hit.category))
    return citations


def assess_response(
    tool_calls: Sequence[ToolCallEvidence],
    response_text: str,
    threshold: float = DEFAULT_REVIEW_THRESHOLD,
) -> ConfidenceAssessment:
    """Score, cite and decide escalation for one response turn."""
    score = calculate_confidence(tool_calls, response_text)
    return ConfidenceAssessment(
        score=score,
        citations=extract_citations(tool_calls),
        needs_review=requires_human_review(score, threshold),
    )
