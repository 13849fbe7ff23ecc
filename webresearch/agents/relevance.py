from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from webresearch.models.research import SearchQuery, SearchResult
from webresearch.tools import web_utils

BASE_SCORE = 30
TITLE_TERM_BONUS = 15
SNIPPET_TERM_BONUS = 10
URL_TERM_BONUS = 5
TECH_TERM_BONUS = 8
AUTHORITY_BONUS = 20

TECH_TERMS = ("windows", "linux", "troubleshoot", "fix", "error", "solution", "guide", "tutorial")

AUTHORITATIVE_DOMAINS = (
    "stackoverflow.com",
    "github.com",
    "microsoft.com",
    "docs.microsoft.com",
    "askubuntu.com",
    "superuser.com",
    "serverfault.com",
)


def query_terms(query: str) -> list[str]:
    return [word for word in query.lower().split() if len(word) > 2]


def calculate_relevance_score(result: SearchResult, query: str) -> int:
    """Heuristic 0-100 relevance of one result to the query."""
    title = (result.title or "").lower()
    snippet = (result.snippet or "").lower()
    url = (result.url or "").lower()

    score = BASE_SCORE
    for term in query_terms(query):
        if term in title:
            score += TITLE_TERM_BONUS
        if term in snippet:
            score += SNIPPET_TERM_BONUS
        if term in url:
            score += URL_TERM_BONUS

    if any(term in title or term in snippet for term in TECH_TERMS):
        score += TECH_TERM_BONUS

    if web_utils.host_matches(result.url or "", AUTHORITATIVE_DOMAINS):
        score += AUTHORITY_BONUS

    return max(0, min(score, 100))


def score_results(results: Iterable[SearchResult], query: str) -> list[SearchResult]:
    """Fill in scores the backend did not supply; keep the ones it did."""
    scored: list[SearchResult] = []
    for result in results:
        if result.relevance_score is None:
            result = replace(result, relevance_score=calculate_relevance_score(result, query))
        scored.append(result)
    return scored


def is_relevant(result: SearchResult, threshold: int) -> bool:
    return result.relevance_score is not None and result.relevance_score >= threshold


def count_relevant_results(searches: Iterable[SearchQuery], threshold: int) -> int:
    return sum(1 for search in searches for result in search.results if is_relevant(result, threshold))
