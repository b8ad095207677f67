from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection

from feed_status.models import StatusKey, StatusRecord


class StatusStore(ABC):
    @abstractmethod
    def init_db(self) -> None:
        """Create any required schema."""

    @abstractmethod
    def bulk_lookup(self, article_ids: Collection[str]) -> list[StatusRecord]:
        """Return stored records for the given ids in one query; unknown ids are absent."""

    @abstractmethod
    def bulk_insert_ignore(self, records: Collection[StatusRecord]) -> None:
        """Insert records in one transaction, leaving existing rows untouched."""

    @abstractmethod
    def bulk_update(self, key: StatusKey, flag: bool, article_ids: Collection[str]) -> None:
        """Set one flag for all given ids in one transaction."""
