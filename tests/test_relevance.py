from webresearch.agents.relevance import (
    calculate_relevance_score,
    count_relevant_results,
    score_results,
)
from webresearch.models.research import SearchQuery, SearchResult, SearchStrategy, SearchType


def _result(title="", snippet="", url="https://example.com/", score=None):
    return SearchResult(title=title, url=url, snippet=snippet, source="test", relevance_score=score)


def test_base_score_for_unrelated_result():
    assert calculate_relevance_score(_result("Cats", "Fluffy"), "quantum physics") == 30


def test_term_matches_add_bonuses():
    result = _result("Python packaging", "All about python", "https://example.com/python")
    # title 15 + snippet 10 + url 5 on top of the base
    assert calculate_relevance_score(result, "python") == 60


def test_authoritative_domain_bonus_includes_subdomains():
    plain = _result("x", "y", "https://example.com/q")
    authority = _result("x", "y", "https://meta.stackoverflow.com/q")
    assert calculate_relevance_score(authority, "zzz") - calculate_relevance_score(plain, "zzz") == 20


def test_lookalike_domain_gets_no_authority_bonus():
    assert calculate_relevance_score(_result("x", "y", "https://notgithub.com/"), "zzz") == 30


def test_score_is_clamped():
    title = "windows linux error fix guide tutorial solution troubleshoot"
    result = _result(title, title, "https://github.com/windows-linux-error-fix")
    score = calculate_relevance_score(result, title)
    assert score == 100

    for text in ("", "a", "the and for", "x" * 500):
        assert 0 <= calculate_relevance_score(_result(text, text, "not a url"), text) <= 100


def test_score_results_keeps_backend_scores():
    kept, filled = score_results([_result("a", score=7), _result("python", score=None)], "python")
    assert kept.relevance_score == 7
    assert filled.relevance_score == 45


def test_count_relevant_results():
    strategy = SearchStrategy(name="general", description="", query_templates=("q",))
    search = SearchQuery(
        id="1",
        query="q",
        search_type=SearchType.GENERAL,
        strategy=strategy,
        results=(_result(score=10), _result(score=15), _result(score=90)),
        result_count=3,
    )
    assert count_relevant_results([search], 15) == 2
