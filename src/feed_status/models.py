from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from feed_status.utils.identifiers import derive_article_id
from feed_status.utils.timestamps import utc_now


class StatusKey(str, Enum):
    """Boolean status flags. Values are the persisted column names."""

    READ = "read"
    STARRED = "starred"
    USER_DELETED = "userDeleted"

    @property
    def attribute(self) -> str:
        return _KEY_ATTRIBUTES[self]

    @classmethod
    def parse(cls, value: str | StatusKey) -> StatusKey:
        if isinstance(value, StatusKey):
            return value
        try:
            return cls(str(value).strip())
        except ValueError as exc:
            available = ", ".join(key.value for key in cls)
            raise ValueError(f"Unknown status key '{value}'. Expected one of: {available}") from exc


_KEY_ATTRIBUTES = {
    StatusKey.READ: "read",
    StatusKey.STARRED: "starred",
    StatusKey.USER_DELETED: "user_deleted",
}


@dataclass(slots=True)
class StatusRecord:
    article_id: str
    read: bool = False
    starred: bool = False
    user_deleted: bool = False
    date_arrived: datetime = field(default_factory=utc_now)

    def bool_status(self, key: StatusKey | str) -> bool:
        return bool(getattr(self, StatusKey.parse(key).attribute))

    def set_bool_status(self, flag: bool, key: StatusKey | str) -> None:
        setattr(self, StatusKey.parse(key).attribute, bool(flag))


@dataclass(slots=True)
class ParsedItem:
    feed_url: str
    unique_id: str
    title: str = ""
    url: str = ""
    published_at: datetime | None = None

    @property
    def article_id(self) -> str:
        return derive_article_id(self.feed_url, self.unique_id)


@dataclass(slots=True)
class Article:
    feed_url: str
    unique_id: str
    title: str = ""
    url: str = ""
    status: StatusRecord | None = None

    @property
    def article_id(self) -> str:
        return derive_article_id(self.feed_url, self.unique_id)
