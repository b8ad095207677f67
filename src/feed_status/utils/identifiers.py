from __future__ import annotations

import hashlib
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

ARTICLE_ID_SEPARATOR = " "

_TRACKING_PARAMS = frozenset(
    {"fbclid", "gclid", "igshid", "mc_cid", "mc_eid", "mkt_tok", "ref", "source"}
)


def derive_article_id(feed_url: str, unique_id: str) -> str:
    """Return the composite article id shared by ingestion, statuses and articles.

    Inputs are used verbatim. Any normalization here would split one item
    into several status rows.
    """
    return f"{feed_url}{ARTICLE_ID_SEPARATOR}{unique_id}"


def derive_unique_id(raw_id: str | None, link: str, title: str = "") -> str:
    """Pick the item half of an article id: guid, else canonical link, else a title hash."""
    candidate = (raw_id or "").strip()
    if candidate.startswith(("http://", "https://")):
        return canonicalize_url(candidate)
    if candidate:
        return candidate

    canonical_link = canonicalize_url(link)
    if canonical_link:
        return canonical_link

    digest = hashlib.sha256(title.strip().encode("utf-8")).hexdigest()
    return f"titlehash:{digest}"


def canonicalize_url(url: str) -> str:
    """Lowercase scheme and host, drop tracking parameters, fragment and trailing slash."""
    value = (url or "").strip()
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        return value

    path = parts.path.rstrip("/") or "/"
    query = sorted(
        (key, item)
        for key, item in parse_qsl(parts.query, keep_blank_values=True)
        if not key.lower().startswith("utm_") and key.lower() not in _TRACKING_PARAMS
    )
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), ""))
