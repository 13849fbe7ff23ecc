from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from webresearch.tools import content_extractor
from webresearch.tools.content_extractor import RateLimiter, WebContentExtractor, process_html


def _extractor(**kwargs):
    return WebContentExtractor(
        timeout=1,
        max_chars=4000,
        batch_size=2,
        batch_delay=0,
        rate_limiter=RateLimiter(1000),
        **kwargs,
    )


def test_prioritize_urls_orders_by_tier_and_filters():
    urls = [
        "https://random-blog.net/post",
        "https://stackoverflow.com/questions/1",
        "https://learn.microsoft.com/en-us/windows",
        "https://en.wikipedia.org/wiki/Linux",
        "https://example.com/manual.pdf",
        "https://www.youtube.com/watch?v=abc",
        "not-a-url",
        "https://stackoverflow.com/questions/1",
    ]
    assert _extractor().prioritize_urls(urls) == [
        "https://learn.microsoft.com/en-us/windows",
        "https://stackoverflow.com/questions/1",
        "https://en.wikipedia.org/wiki/Linux",
        "https://random-blog.net/post",
    ]


def test_process_html_prefers_main_content_when_trafilatura_is_empty():
    body = "Useful sentence about configuring things. " * 20
    html = f"""
    <html><head><title>Guide Title</title></head>
    <body><nav>Home | About</nav><article>{body}</article><footer>(c)</footer></body></html>
    """
    with patch.object(content_extractor, "_extract_with_trafilatura", return_value=""):
        title, text = process_html(html, max_chars=4000)

    assert title == "Guide Title"
    assert text.startswith("Useful sentence about configuring things.")
    assert "Home | About" not in text


def test_process_html_truncates_at_sentence_boundary():
    body = "This is a sentence. " * 50
    with patch.object(content_extractor, "_extract_with_trafilatura", return_value=body):
        _, text = process_html(f"<html><body>{body}</body></html>", max_chars=300)

    assert text.endswith("[content truncated]")
    assert len(text) < 330


def test_title_falls_back_to_og_title():
    html = '<html><head><meta property="og:title" content="OG Title"></head><body></body></html>'
    with patch.object(content_extractor, "_extract_with_trafilatura", return_value=""):
        title, _ = process_html(html)
    assert title == "OG Title"


@pytest.mark.asyncio
async def test_extract_content_reports_http_errors():
    request = httpx.Request("GET", "https://example.com/missing")
    error = httpx.HTTPStatusError("nope", request=request, response=httpx.Response(404, request=request))
    extractor = _extractor()

    with patch.object(WebContentExtractor, "_fetch", AsyncMock(side_effect=error)):
        result = await extractor.extract_content("https://example.com/missing")

    assert result.success is False
    assert result.error == "Page not found (404)"


@pytest.mark.asyncio
async def test_extract_content_reports_timeouts():
    extractor = _extractor()
    with patch.object(WebContentExtractor, "_fetch", AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
        result = await extractor.extract_content("https://example.com/slow")
    assert result.success is False
    assert result.error == "Request timed out"


@pytest.mark.asyncio
async def test_extract_content_rejects_invalid_url():
    result = await _extractor().extract_content("ftp://example.com/file")
    assert result.success is False
    assert result.error == "Invalid URL format"


@pytest.mark.asyncio
async def test_extract_content_success():
    html = "<html><head><title>Hello</title></head><body><p>Some words here.</p></body></html>"
    extractor = _extractor()
    with patch.object(WebContentExtractor, "_fetch", AsyncMock(return_value=html)), patch.object(
        content_extractor, "_extract_with_trafilatura", return_value="Some words here."
    ):
        result = await extractor.extract_content("https://example.com/hello")

    assert result.success is True
    assert result.title == "Hello"
    assert result.word_count == 3


@pytest.mark.asyncio
async def test_extract_multiple_keeps_order_and_respects_concurrency():
    extractor = _extractor()
    active = 0
    peak = 0

    async def fake_extract(url):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0)
        active -= 1
        return content_extractor._failed(url, "skip")

    urls = [f"https://example.com/{i}" for i in range(5)]
    with patch.object(extractor, "extract_content", side_effect=fake_extract):
        results = await extractor.extract_multiple(urls, max_concurrency=1)

    assert [r.url for r in results] == urls
    assert peak == 1


@pytest.mark.asyncio
async def test_rate_limiter_waits_for_window_to_slide():
    limiter = RateLimiter(2, window_seconds=0.2)

    started = time.monotonic()
    await limiter.acquire()
    await limiter.acquire()
    assert time.monotonic() - started < 0.1

    await limiter.acquire()
    assert time.monotonic() - started >= 0.18
    assert len(limiter._requests) == 2
