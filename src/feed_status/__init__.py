"""Cached, batched persistence of per-article read/starred/deleted flags."""

from .cache import StatusCache
from .manager import MissingStatusError, StatusManager
from .models import Article, ParsedItem, StatusKey, StatusRecord
from .utils.identifiers import derive_article_id

__all__ = [
    "Article",
    "MissingStatusError",
    "ParsedItem",
    "StatusCache",
    "StatusKey",
    "StatusManager",
    "StatusRecord",
    "derive_article_id",
]
