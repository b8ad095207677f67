from __future__ import annotations

from datetime import timezone

import pytest

from feed_status.config import SourceSettings
from feed_status.sources import RssSource, SourceRegistrationError, create_source, registered_source_types
from feed_status.utils.identifiers import derive_article_id

FEED_URL = "https://a.example/feed"


class _DummyResponse:
    def __init__(self, content: bytes) -> None:
        self.content = content

    def raise_for_status(self) -> None:
        return None


def _source() -> RssSource:
    return RssSource(SourceSettings(id="example", type="rss", url=FEED_URL))


def test_rss_entries_become_parsed_items(monkeypatch: pytest.MonkeyPatch) -> None:
    xml = b"""<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
      <channel>
        <title>Example</title>
        <item>
          <title>  First   post </title>
          <link>https://a.example/posts/1/?utm_source=rss</link>
          <guid isPermaLink="false">123</guid>
          <pubDate>Tue, 06 Jan 2026 10:00:00 +0000</pubDate>
        </item>
        <item>
          <title>Second post</title>
          <link>https://a.example/posts/2</link>
        </item>
        <item>
          <title>First post again</title>
          <guid isPermaLink="false">123</guid>
        </item>
      </channel>
    </rss>
    """
    monkeypatch.setattr("requests.get", lambda *args, **kwargs: _DummyResponse(xml))

    items = _source().fetch()

    assert [item.unique_id for item in items] == ["123", "https://a.example/posts/2"]
    first = items[0]
    assert first.title == "First post"
    assert first.url == "https://a.example/posts/1"
    assert first.feed_url == FEED_URL
    assert first.article_id == derive_article_id(FEED_URL, "123") == "https://a.example/feed 123"
    assert first.published_at is not None
    assert first.published_at.tzinfo == timezone.utc
    assert items[1].published_at is None


def test_rss_fetch_surfaces_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    class _FailingResponse(_DummyResponse):
        def raise_for_status(self) -> None:
            raise RuntimeError("503 Service Unavailable")

    monkeypatch.setattr("requests.get", lambda *args, **kwargs: _FailingResponse(b""))

    with pytest.raises(RuntimeError, match="503"):
        _source().fetch()


def test_create_source_uses_registry() -> None:
    assert "rss" in registered_source_types()
    assert isinstance(create_source(SourceSettings(id="x", type="RSS", url=FEED_URL)), RssSource)

    with pytest.raises(SourceRegistrationError, match="unknown type 'atom-ish'"):
        create_source(SourceSettings(id="x", type="atom-ish", url=FEED_URL))
