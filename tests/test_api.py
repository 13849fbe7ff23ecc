"""Tests for API routes."""
import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeBackend, FakeExtractor, make_result
from webresearch.agents.orchestrator import ResearchOrchestrator
from webresearch.api.deps import get_orchestrator
from webresearch.main import app
from webresearch.models.research import ResearchConfig
from webresearch.tools.search_backend import SearchBackendError


@pytest.fixture
def orchestrator():
    return ResearchOrchestrator(
        backends=[FakeBackend("fake", [make_result(i) for i in range(1, 6)])],
        extractor=FakeExtractor(),
        defaults=ResearchConfig(max_content_extractions=2),
    )


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _wait_until_finished(client, session_id):
    for _ in range(200):
        progress = client.get(f"/api/research/{session_id}/progress").json()
        if progress["progress"] == 100:
            return progress
        time.sleep(0.01)
    raise AssertionError("research session did not finish")


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "webresearch", "sessions": 0, "running": 0}


def test_research_lifecycle(client):
    response = client.post("/api/research", json={"query": "tulips", "max_searches": 3})
    assert response.status_code == 200
    session_id = response.json()["session_id"]

    progress = _wait_until_finished(client, session_id)
    assert progress["status"] == "completed"
    assert progress["current_step"] == "Research completed"

    detail = client.get(f"/api/research/{session_id}").json()
    assert detail["status"] == "completed"
    assert len(detail["searches"]) <= 3
    assert detail["searches"][0]["strategy_name"] == "general"
    assert len(detail["extracted_content"]) == 2

    context = client.get(f"/api/research/{session_id}/context").json()
    assert context["session_id"] == session_id
    assert context["sources"][0] == "https://example.com/page-1"

    recent = client.get("/api/research/recent").json()
    assert recent["session_id"] == session_id

    listing = client.get("/api/research").json()
    assert [s["id"] for s in listing] == [session_id]


def test_stream_of_finished_session(client):
    session_id = client.post("/api/research", json={"query": "tulips"}).json()["session_id"]
    _wait_until_finished(client, session_id)

    response = client.get(f"/api/research/{session_id}/stream")
    assert response.status_code == 200
    assert "event: done" in response.text


def test_unknown_session_returns_404(client):
    for path in ("", "/progress", "/context", "/stream"):
        assert client.get(f"/api/research/missing{path}").status_code == 404
    assert client.delete("/api/research/missing").status_code == 404


def test_recent_without_sessions_returns_404(client):
    assert client.get("/api/research/recent").status_code == 404


def test_stop_marks_session_failed(client, orchestrator):
    orchestrator.backends = [FakeBackend("fake", [])]
    session_id = client.post("/api/research", json={"query": "tulips"}).json()["session_id"]

    response = client.delete(f"/api/research/{session_id}")

    assert response.status_code == 200
    assert response.json()["status"] in ("failed", "completed", "insufficient_results")
    assert client.get(f"/api/research/{session_id}").json()["end_time"] is not None


def test_invalid_request_is_rejected(client):
    assert client.post("/api/research", json={"query": ""}).status_code == 422
    assert client.post("/api/research", json={"query": "x", "max_searches": -1}).status_code == 422


def test_quick_search(client):
    payload = {
        "query": "tulips",
        "provider": "duckduckgo",
        "fallback_from": None,
        "results_count": 0,
        "results": [],
        "summary": None,
    }
    with patch(
        "webresearch.api.routes.research.research_runner.quick_search",
        AsyncMock(return_value=payload),
    ) as mock_quick:
        response = client.post("/api/search/quick", json={"query": "tulips", "num_results": 3})

    assert response.status_code == 200
    assert response.json()["provider"] == "duckduckgo"
    mock_quick.assert_awaited_once_with("tulips", 3, None)


def test_quick_search_all_backends_down(client):
    with patch(
        "webresearch.api.routes.research.research_runner.quick_search",
        AsyncMock(side_effect=SearchBackendError("all down")),
    ):
        response = client.post("/api/search/quick", json={"query": "tulips"})
    assert response.status_code == 502


def test_extract_fetches_prioritized_urls(client):
    urls = [
        "https://example.com/a",
        "https://stackoverflow.com/questions/1",
        "https://www.youtube.com/watch?v=x",
        "not-a-url",
        "https://example.com/a",
    ]
    response = client.post("/api/extract", json={"urls": urls})

    assert response.status_code == 200
    body = response.json()
    assert body["total_urls"] == 2
    assert body["successful"] == 2
    assert body["failed"] == 0
    assert [page["url"] for page in body["results"]] == [
        "https://stackoverflow.com/questions/1",
        "https://example.com/a",
    ]
    assert body["results"][0]["word_count"] == 150
    assert body["results"][0]["content"].startswith("word word")


def test_extract_honours_max_urls_and_reports_failures(client, orchestrator):
    orchestrator.extractor = FakeExtractor(fail_urls=("https://example.com/1",))
    urls = [f"https://example.com/{i}" for i in range(1, 5)]

    body = client.post("/api/extract", json={"urls": urls, "max_urls": 2}).json()

    assert body["total_urls"] == 2
    assert body["successful"] == 1
    assert body["failed"] == 1
    assert body["results"][0]["success"] is False
    assert orchestrator.extractor.requested == urls[:2]


def test_extract_rejects_bad_url_lists(client):
    assert client.post("/api/extract", json={"urls": []}).status_code == 422
    too_many = [f"https://example.com/{i}" for i in range(11)]
    assert client.post("/api/extract", json={"urls": too_many}).status_code == 422
