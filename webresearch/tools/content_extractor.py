from __future__ import annotations

import asyncio
import re
import time
from abc import ABC, abstractmethod
from collections import deque

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from webresearch.config import settings
from webresearch.models.research import ExtractedContent
from webresearch.tools import web_utils

NAV_MARKERS = (
    "main menu",
    "navigation",
    "jump to content",
    "cookie",
    "subscribe",
)

BOILERPLATE_SELECTORS = (
    "script, style, noscript, nav, header, footer, aside, form, iframe, "
    ".advertisement, .ads, .sidebar, .menu, .navigation, .comment, .comments, "
    ".social-share, .related-posts, .popup, .modal"
)

MAIN_CONTENT_SELECTORS = (
    "main",
    "article",
    "[role='main']",
    ".main-content",
    ".content",
    ".post",
    ".entry",
    "#content",
    "#main",
    ".article-body",
    ".post-content",
    ".entry-content",
    ".text-content",
)

IRRELEVANT_URL_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\.(pdf|doc|docx|xls|xlsx|ppt|pptx|zip|tar|gz|rar|exe|msi)$",
        r"\.(jpg|jpeg|png|gif|bmp|svg|ico|webp)$",
        r"\.(mp3|mp4|avi|mov|wmv|flv|mkv)$",
        r"facebook\.com/.*/posts",
        r"twitter\.com/.*/status",
        r"x\.com/.*/status",
        r"instagram\.com/p/",
        r"pinterest\.com/pin",
        r"youtube\.com/watch",
        r"tiktok\.com/@",
    )
)

# Official documentation and standards bodies
CRITICAL_DOMAINS = (
    "docs.microsoft.com",
    "support.microsoft.com",
    "technet.microsoft.com",
    "learn.microsoft.com",
    "developer.mozilla.org",
    "docs.python.org",
    "w3.org",
    "ietf.org",
    "rfc-editor.org",
)

HIGH_PRIORITY_DOMAINS = (
    "stackoverflow.com",
    "askubuntu.com",
    "unix.stackexchange.com",
    "superuser.com",
    "serverfault.com",
    "github.com",
    "gitlab.com",
    "bitbucket.org",
)

MEDIUM_PRIORITY_DOMAINS = (
    "reddit.com",
    "wikipedia.org",
    "linuxconfig.org",
    "tecmint.com",
    "digitalocean.com",
    "howtogeek.com",
    "tomsguide.com",
    "pcworld.com",
    "techrepublic.com",
    "zdnet.com",
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "max-age=0",
    "Upgrade-Insecure-Requests": "1",
}


class RateLimiter:
    """Sliding one-minute window limiter shared by all extraction calls."""

    def __init__(self, requests_per_minute: int, *, window_seconds: float = 60.0):
        self.requests_per_minute = max(int(requests_per_minute), 1)
        self.window_seconds = window_seconds
        self._requests: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            while self._requests and now - self._requests[0] >= self.window_seconds:
                self._requests.popleft()
            if len(self._requests) >= self.requests_per_minute:
                wait = self.window_seconds - (now - self._requests[0])
                if wait > 0:
                    await asyncio.sleep(wait)
                self._requests.popleft()
            self._requests.append(time.monotonic())


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n\s*\n+", "\n\n", text)
    return text.strip()


def _truncate(text: str, max_chars: int) -> str:
    """Clip to ``max_chars``, preferring a sentence boundary in the last 30%."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    clipped = text[:max_chars]
    last_sentence = clipped.rfind(". ")
    if last_sentence > max_chars * 0.7:
        return clipped[: last_sentence + 1] + " [content truncated]"
    return clipped + "... [content truncated]"


def _looks_low_quality(text: str) -> bool:
    normalized = text.lower()
    marker_hits = sum(normalized.count(marker) for marker in NAV_MARKERS)
    if len(text) < 200:
        return True
    if marker_hits >= 4 and len(text) < 2500:
        return True
    return False


def _extract_with_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(raw_html, output_format="txt")
    if not isinstance(extracted, str):
        return ""
    return _normalize_text(extracted)


def _extract_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string and soup.title.string.strip():
        return _normalize_text(soup.title.string)
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return _normalize_text(h1.get_text(" ", strip=True))
    for attrs in ({"property": "og:title"}, {"name": "title"}):
        meta = soup.find("meta", attrs=attrs)
        if meta and meta.get("content"):
            return _normalize_text(meta["content"])
    return "Untitled"


def _extract_with_selectors(soup: BeautifulSoup) -> str:
    for el in soup.select(BOILERPLATE_SELECTORS):
        el.decompose()

    content = ""
    for selector in MAIN_CONTENT_SELECTORS:
        for el in soup.select(selector):
            text = el.get_text(" ", strip=True)
            if len(text) > len(content):
                content = text

    if len(content) < 100 and soup.body is not None:
        content = soup.body.get_text(" ", strip=True)
    return _normalize_text(content)


def process_html(html: str, *, max_chars: int | None = None) -> tuple[str, str]:
    """Return ``(title, text)`` for a fetched HTML document."""
    target_chars = max_chars if max_chars is not None else settings.extractor_max_content_chars
    soup = BeautifulSoup(html, "html.parser")
    title = _extract_title(soup)

    text = _extract_with_trafilatura(html)
    if not text or _looks_low_quality(text):
        fallback = _extract_with_selectors(soup)
        if len(fallback) > len(text):
            text = fallback

    text = " ".join(text.split())
    return title, _truncate(text, target_chars)


def _describe_http_error(exc: Exception) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "Request timed out"
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 403:
            return "Access forbidden (403)"
        if status == 404:
            return "Page not found (404)"
        if status == 429:
            return "Rate limited (429)"
        return f"HTTP {status}: {exc.response.reason_phrase}"
    return str(exc) or type(exc).__name__


def _failed(url: str, error: str) -> ExtractedContent:
    return ExtractedContent(url=url, title="", content="", word_count=0, success=False, error=error)


class ContentExtractor(ABC):
    """Fetches pages and turns them into plain text.

    Implementations never raise from ``extract_content``; failures come back
    as ``success=False`` records.
    """

    @abstractmethod
    async def extract_content(self, url: str) -> ExtractedContent:
        raise NotImplementedError

    async def extract_multiple(
        self, urls: list[str], *, max_concurrency: int | None = None
    ) -> list[ExtractedContent]:
        limit = max(1, max_concurrency or len(urls) or 1)
        semaphore = asyncio.Semaphore(limit)

        async def run_one(url: str) -> ExtractedContent:
            async with semaphore:
                return await self.extract_content(url)

        return list(await asyncio.gather(*(run_one(u) for u in urls)))

    def is_relevant_url(self, url: str) -> bool:
        return not any(p.search(url) for p in IRRELEVANT_URL_PATTERNS)

    def prioritize_urls(self, urls: list[str]) -> list[str]:
        """Deduplicate, drop non-article URLs, and order by estimated value."""
        tiers: tuple[list[str], list[str], list[str], list[str]] = ([], [], [], [])
        seen: set[str] = set()
        for url in urls:
            if url in seen or not web_utils.is_valid_url(url) or not self.is_relevant_url(url):
                continue
            seen.add(url)
            if web_utils.host_matches(url, CRITICAL_DOMAINS):
                tiers[0].append(url)
            elif web_utils.host_matches(url, HIGH_PRIORITY_DOMAINS):
                tiers[1].append(url)
            elif web_utils.host_matches(url, MEDIUM_PRIORITY_DOMAINS):
                tiers[2].append(url)
            else:
                tiers[3].append(url)
        return [url for tier in tiers for url in tier]


class WebContentExtractor(ContentExtractor):
    """httpx + trafilatura extractor with a BeautifulSoup fallback."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        max_chars: int | None = None,
        batch_size: int | None = None,
        batch_delay: float | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.timeout = timeout or settings.extractor_timeout_seconds
        self.max_chars = max_chars or settings.extractor_max_content_chars
        self.batch_size = max(int(batch_size or settings.extractor_batch_size), 1)
        self.batch_delay = (
            batch_delay if batch_delay is not None else settings.extractor_batch_delay_seconds
        )
        self.rate_limiter = rate_limiter or RateLimiter(settings.extractor_requests_per_minute)

    async def _fetch(self, url: str) -> str:
        headers = {"User-Agent": settings.search_user_agent, **BROWSER_HEADERS}
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=5,
        ) as client:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
            return response.text

    async def extract_content(self, url: str) -> ExtractedContent:
        if not web_utils.is_valid_url(url):
            return _failed(url, "Invalid URL format")

        try:
            await self.rate_limiter.acquire()
            html = await self._fetch(url)
        except Exception as e:
            logger.debug(f"Extraction fetch failed for {url}: {e}")
            return _failed(url, _describe_http_error(e))

        try:
            # Parsing is CPU-bound; keep the loop free for other sessions
            title, text = await asyncio.to_thread(process_html, html, max_chars=self.max_chars)
        except Exception as e:
            logger.warning(f"Extraction parse failed for {url}: {e}")
            return _failed(url, f"Parse error: {e}")

        return ExtractedContent(
            url=url,
            title=title,
            content=text,
            word_count=len(text.split()),
            success=bool(text),
            error=None if text else "No text content found",
        )

    async def extract_multiple(
        self, urls: list[str], *, max_concurrency: int | None = None
    ) -> list[ExtractedContent]:
        """Extract in fixed-size concurrent batches with a pause between them."""
        batch_size = self.batch_size
        if max_concurrency is not None:
            batch_size = max(1, min(batch_size, max_concurrency))

        results: list[ExtractedContent] = []
        for start in range(0, len(urls), batch_size):
            batch = urls[start : start + batch_size]
            results.extend(await asyncio.gather(*(self.extract_content(u) for u in batch)))
            if start + batch_size < len(urls) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
        return results
