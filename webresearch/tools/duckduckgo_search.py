from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from webresearch.models.research import SearchResult
from webresearch.tools import web_utils
from webresearch.tools.search_backend import SearchBackend, rank_score

DDG_API_URL = "https://api.duckduckgo.com/"
DDG_HTML_URL = "https://html.duckduckgo.com/html/"

# Several selectors so a layout change on the HTML page does not zero us out
RESULT_SELECTORS = ".result, .results_links, .web-result"
LINK_SELECTORS = "a.result__a, a.result__url, a[href^='http']"
SNIPPET_SELECTORS = ".result__snippet, .result__desc"


class DuckDuckGoSearch(SearchBackend):
    """DuckDuckGo Instant Answer API. No key required."""

    name = "duckduckgo"

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        response = await self._get(
            DDG_API_URL,
            params={
                "q": query,
                "format": "json",
                "no_redirect": 1,
                "no_html": 1,
                "skip_disambig": 1,
            },
        )
        data = response.json()
        results: list[SearchResult] = []

        abstract = data.get("AbstractText") or ""
        abstract_url = data.get("AbstractURL") or ""
        if abstract and abstract_url:
            results.append(
                SearchResult(
                    title=data.get("Heading") or "DuckDuckGo Instant Answer",
                    url=abstract_url,
                    snippet=web_utils.clip(abstract, 200),
                    source=self.name,
                    position=1,
                    relevance_score=95,
                )
            )

        topics = data.get("RelatedTopics") or []
        for i, topic in enumerate(topics):
            if len(results) >= max_results:
                break
            # Grouped topics nest their entries under "Topics"; only flat ones carry a URL
            url = topic.get("FirstURL")
            text = topic.get("Text")
            if not url or not text:
                continue
            results.append(
                SearchResult(
                    title=text.split(" - ")[0] or "Related Topic",
                    url=url,
                    snippet=web_utils.clip(text, 200),
                    source=self.name,
                    position=len(results) + 1,
                    relevance_score=rank_score(i, top=90, step=5, floor=60),
                )
            )

        return results[:max_results]


class DuckDuckGoHtmlSearch(SearchBackend):
    """Scrapes the DuckDuckGo HTML results page. Last-resort fallback."""

    name = "duckduckgo_html"

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        response = await self._get(
            DDG_HTML_URL,
            params={"q": query},
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
        )
        return parse_html_results(response.text, max_results, source=self.name)


def resolve_href(href: str) -> str:
    """Unwrap DuckDuckGo redirect links (``//duckduckgo.com/l/?uddg=...``)."""
    href = href.strip()
    parsed = urlparse("https:" + href if href.startswith("//") else href)
    if parsed.netloc.endswith("duckduckgo.com") and parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return target[0]
    return href


def parse_html_results(html: str, max_results: int, *, source: str = "duckduckgo_html") -> list[SearchResult]:
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    seen: set[str] = set()

    for el in soup.select(RESULT_SELECTORS):
        if len(results) >= max_results:
            break
        link = el.select_one(LINK_SELECTORS)
        if link is None:
            continue
        href = resolve_href(link.get("href") or "")
        title = link.get_text(" ", strip=True)
        if not href or not title or href in seen:
            continue
        if not web_utils.is_valid_url(href):
            continue
        seen.add(href)
        snippet_el = el.select_one(SNIPPET_SELECTORS)
        snippet = snippet_el.get_text(" ", strip=True) if snippet_el else ""
        results.append(
            SearchResult(
                title=title,
                url=href,
                snippet=snippet[:220],
                source=source,
                position=len(results) + 1,
                relevance_score=rank_score(len(results), top=85, step=5, floor=30),
            )
        )
    return results
