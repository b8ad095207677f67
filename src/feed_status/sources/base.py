from __future__ import annotations

from abc import ABC, abstractmethod

from feed_status.models import ParsedItem


class Source(ABC):
    def __init__(self, source_id: str) -> None:
        self.source_id = source_id

    @abstractmethod
    def fetch(self) -> list[ParsedItem]:
        """Fetch the feed and reduce its entries to item descriptors."""
