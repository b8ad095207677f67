from __future__ import annotations

from collections.abc import Iterable

from feed_status.models import StatusRecord


class StatusCache:
    """In-memory map of article id to status record.

    Not thread-safe: the owning StatusManager serializes every access.
    """

    def __init__(self) -> None:
        self._records: dict[str, StatusRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, article_id: object) -> bool:
        return article_id in self._records

    def lookup(self, article_id: str) -> StatusRecord | None:
        return self._records.get(article_id)

    def insert(self, record: StatusRecord) -> None:
        self._records[record.article_id] = record

    def insert_missing(self, records: Iterable[StatusRecord]) -> list[StatusRecord]:
        """Add records whose id is not cached yet; cached entries always win."""
        added: list[StatusRecord] = []
        for record in records:
            if record.article_id in self._records:
                continue
            self._records[record.article_id] = record
            added.append(record)
        return added

    def missing_ids(self, article_ids: Iterable[str]) -> set[str]:
        return {article_id for article_id in article_ids if article_id not in self._records}
