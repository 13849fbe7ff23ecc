from __future__ import annotations

import re
from urllib.parse import quote

from webresearch.config import settings
from webresearch.models.research import SearchResult
from webresearch.tools.search_backend import SearchBackend

JINA_SEARCH_URL = "https://s.jina.ai/"

_FIELD_PATTERN = re.compile(
    r"\[(\d+)\]\s+(Title|URL Source|Description):\s*(.*?)(?=\[\d+\]|$)",
    re.DOTALL,
)


def parse_jina_response(text: str, max_results: int = 10) -> list[SearchResult]:
    """Parse the plain-text listing returned by s.jina.ai.

    Format::

        [1] Title: ...
        [1] URL Source: ...
        [1] Description: ...
    """
    blocks: dict[int, dict[str, str]] = {}
    for index_str, field_name, value in _FIELD_PATTERN.findall(text):
        blocks.setdefault(int(index_str), {})[field_name] = value.strip()

    results: list[SearchResult] = []
    for index in sorted(blocks):
        block = blocks[index]
        url = block.get("URL Source", "")
        if not url:
            continue
        results.append(
            SearchResult(
                title=block.get("Title") or "Untitled",
                url=url,
                snippet=block.get("Description", ""),
                source=JinaSearch.name,
                position=len(results) + 1,
                # s.jina.ai does not rank numerically; leave it to the scorer
                relevance_score=None,
            )
        )
        if len(results) >= max_results:
            break
    return results


class JinaSearch(SearchBackend):
    name = "jina"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else settings.jina_api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        self._require_configured()
        response = await self._get(
            f"{JINA_SEARCH_URL}?q={quote(query, safe='')}",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "X-Respond-With": "no-content",
            },
        )
        return parse_jina_response(response.text, max_results)
