from __future__ import annotations

import logging
import re
from typing import Any

import feedparser
import requests

from feed_status.config import SourceSettings
from feed_status.models import ParsedItem
from feed_status.utils.identifiers import canonicalize_url, derive_unique_id
from feed_status.utils.timestamps import parse_timestamp

from .base import Source
from .registry import register_source

logger = logging.getLogger(__name__)

_MULTISPACE = re.compile(r"\s+")
USER_AGENT = "feed-status/0.1"


class RssSource(Source):
    """Reduces the entries of an RSS/Atom feed to ParsedItem descriptors.

    The configured feed URL is used verbatim as the feed half of every
    article id.
    """

    def __init__(self, settings: SourceSettings) -> None:
        super().__init__(source_id=settings.id)
        self.url = settings.url
        timeout_raw = settings.options.get("timeout_seconds", 30)
        self.timeout_seconds = int(timeout_raw) if timeout_raw is not None else 30

    def fetch(self) -> list[ParsedItem]:
        response = requests.get(
            self.url,
            timeout=self.timeout_seconds,
            headers={"User-Agent": USER_AGENT},
        )
        response.raise_for_status()

        parsed = feedparser.parse(response.content)
        if getattr(parsed, "bozo", False):
            logger.warning("Feed parsing bozo exception for %s: %s", self.url, parsed.bozo_exception)

        items: list[ParsedItem] = []
        seen_ids: set[str] = set()
        for entry in parsed.entries:
            item = self._entry_to_item(entry)
            if item.unique_id in seen_ids:
                logger.debug("Skipping duplicate entry %s in %s", item.unique_id, self.url)
                continue
            seen_ids.add(item.unique_id)
            items.append(item)
        return items

    def _entry_to_item(self, entry: Any) -> ParsedItem:
        title = _normalize_whitespace(str(entry.get("title", "")))
        link = str(entry.get("link", "")).strip()
        raw_identifier = (
            str(entry.get("id", "")).strip()
            or str(entry.get("guid", "")).strip()
            or None
        )

        published_at = (
            parse_timestamp(entry.get("published_parsed"))
            or parse_timestamp(entry.get("updated_parsed"))
            or parse_timestamp(entry.get("published"))
            or parse_timestamp(entry.get("updated"))
        )

        return ParsedItem(
            feed_url=self.url,
            unique_id=derive_unique_id(raw_identifier, link, title),
            title=title,
            url=canonicalize_url(link),
            published_at=published_at,
        )


def _normalize_whitespace(value: str) -> str:
    return _MULTISPACE.sub(" ", value).strip()


@register_source("rss")
def _build_rss_source(settings: SourceSettings) -> Source:
    return RssSource(settings)
