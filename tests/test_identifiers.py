from __future__ import annotations

from feed_status.models import Article, ParsedItem
from feed_status.utils.identifiers import derive_article_id, derive_unique_id


def test_article_id_is_stable_across_calls() -> None:
    first = derive_article_id("https://a.example/feed", "123")
    second = derive_article_id("https://a.example/feed", "123")

    assert first == second == "https://a.example/feed 123"


def test_article_id_uses_inputs_verbatim() -> None:
    assert derive_article_id("https://A.example/feed/", "x") == "https://A.example/feed/ x"


def test_parsed_item_and_article_share_the_same_id() -> None:
    item = ParsedItem(feed_url="https://a.example/feed", unique_id="123")
    article = Article(feed_url="https://a.example/feed", unique_id="123")

    assert item.article_id == article.article_id == derive_article_id("https://a.example/feed", "123")


def test_unique_id_prefers_raw_identifier() -> None:
    assert derive_unique_id(" tag:a.example,2026:1 ", "https://a.example/post") == "tag:a.example,2026:1"


def test_unique_id_canonicalizes_url_identifiers() -> None:
    unique_id = derive_unique_id("https://A.example/post/?utm_source=rss", "")

    assert unique_id == "https://a.example/post"


def test_unique_id_falls_back_to_link_then_title_hash() -> None:
    assert derive_unique_id(None, "https://a.example/post/?ref=home") == "https://a.example/post"

    hashed = derive_unique_id(None, "", "Some title")
    assert hashed.startswith("titlehash:")
    assert hashed == derive_unique_id("", "", "Some title")
