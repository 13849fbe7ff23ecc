from datetime import timedelta

from webresearch.models.research import ResearchConfig, ResearchSession, SessionStatus, utcnow
from webresearch.services.session_store import SessionStore


def _session(sid, status=SessionStatus.SEARCHING, ended_ago=None):
    session = ResearchSession(id=sid, original_query="q", query="q", config=ResearchConfig(), status=status)
    if ended_ago is not None:
        session.end_time = utcnow() - ended_ago
    return session


def test_get_returns_added_session():
    store = SessionStore(max_sessions=5, max_age_seconds=60)
    session = _session("a")
    store.add(session)
    assert store.get("a") is session
    assert store.get("missing") is None
    assert "a" in store


def test_evicts_least_recently_used_finished_sessions():
    store = SessionStore(max_sessions=2, max_age_seconds=3600)
    store.add(_session("old", SessionStatus.COMPLETED, timedelta(seconds=1)))
    store.add(_session("newer", SessionStatus.COMPLETED, timedelta(seconds=1)))
    store.get("old")
    store.add(_session("newest", SessionStatus.FAILED, timedelta(seconds=1)))

    assert "newer" not in store
    assert "old" in store
    assert "newest" in store


def test_running_sessions_are_never_evicted():
    store = SessionStore(max_sessions=1, max_age_seconds=3600)
    store.add(_session("running-1"))
    store.add(_session("running-2"))
    assert len(store) == 2

    store.add(_session("done", SessionStatus.COMPLETED, timedelta(seconds=1)))
    assert "done" not in store
    assert len(store) == 2


def test_expired_sessions_are_pruned():
    store = SessionStore(max_sessions=10, max_age_seconds=60)
    store.add(_session("running"))
    store.add(_session("fresh", SessionStatus.COMPLETED, timedelta(seconds=5)))
    store.add(_session("stale", SessionStatus.INSUFFICIENT_RESULTS, timedelta(minutes=5)))

    assert "stale" not in store
    store.prune()
    assert [s.id for s in store.values()] == ["running", "fresh"]
