from __future__ import annotations

from feed_status.cache import StatusCache
from feed_status.models import StatusRecord


def test_lookup_returns_none_for_unknown_id() -> None:
    cache = StatusCache()

    assert cache.lookup("https://a.example/feed 1") is None
    assert len(cache) == 0


def test_insert_overwrites_existing_entry() -> None:
    cache = StatusCache()
    first = StatusRecord(article_id="a")
    second = StatusRecord(article_id="a", read=True)

    cache.insert(first)
    cache.insert(second)

    assert cache.lookup("a") is second
    assert len(cache) == 1


def test_insert_missing_never_replaces_cached_record() -> None:
    cache = StatusCache()
    cached = StatusRecord(article_id="a", starred=True)
    cache.insert(cached)

    stale = StatusRecord(article_id="a")
    fresh = StatusRecord(article_id="b")
    added = cache.insert_missing([stale, fresh])

    assert added == [fresh]
    assert cache.lookup("a") is cached
    assert cache.lookup("a").starred is True
    assert cache.lookup("b") is fresh


def test_missing_ids_filters_cached_ids() -> None:
    cache = StatusCache()
    cache.insert(StatusRecord(article_id="a"))

    assert cache.missing_ids(["a", "b", "c", "b"]) == {"b", "c"}
    assert "a" in cache
    assert "b" not in cache
