from __future__ import annotations

import sqlite3
from collections.abc import Collection, Iterator, Sequence
from pathlib import Path

from feed_status.models import StatusKey, StatusRecord
from feed_status.utils.timestamps import isoformat_utc, parse_timestamp, utc_now

from .base import StatusStore

# Stays below SQLITE_MAX_VARIABLE_NUMBER on older builds (999).
_MAX_VARIABLES_PER_STATEMENT = 500


class SQLiteStatusStore(StatusStore):
    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS statuses (
                    articleID TEXT NOT NULL PRIMARY KEY,
                    read INTEGER NOT NULL DEFAULT 0,
                    starred INTEGER NOT NULL DEFAULT 0,
                    userDeleted INTEGER NOT NULL DEFAULT 0,
                    dateArrived TEXT NOT NULL
                )
                """
            )
            connection.commit()

    def bulk_lookup(self, article_ids: Collection[str]) -> list[StatusRecord]:
        if not article_ids:
            return []

        records: list[StatusRecord] = []
        with self._connect() as connection:
            for chunk in _chunked(sorted(article_ids), _MAX_VARIABLES_PER_STATEMENT):
                placeholders = ", ".join("?" for _ in chunk)
                rows = connection.execute(
                    f"""
                    SELECT articleID, read, starred, userDeleted, dateArrived
                    FROM statuses
                    WHERE articleID IN ({placeholders})
                    """,
                    chunk,
                ).fetchall()
                records.extend(_row_to_record(row) for row in rows)
        return records

    def bulk_insert_ignore(self, records: Collection[StatusRecord]) -> None:
        if not records:
            return

        with self._connect() as connection:
            connection.executemany(
                """
                INSERT OR IGNORE INTO statuses (articleID, read, starred, userDeleted, dateArrived)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        record.article_id,
                        int(record.read),
                        int(record.starred),
                        int(record.user_deleted),
                        isoformat_utc(record.date_arrived),
                    )
                    for record in records
                ],
            )
            connection.commit()

    def bulk_update(self, key: StatusKey, flag: bool, article_ids: Collection[str]) -> None:
        if not article_ids:
            return

        column = StatusKey.parse(key).value
        # One transaction for every chunk so a batch is never partially visible.
        with self._connect() as connection:
            for chunk in _chunked(sorted(article_ids), _MAX_VARIABLES_PER_STATEMENT - 1):
                placeholders = ", ".join("?" for _ in chunk)
                connection.execute(
                    f'UPDATE statuses SET "{column}" = ? WHERE articleID IN ({placeholders})',
                    [int(flag), *chunk],
                )
            connection.commit()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        return connection


def _row_to_record(row: sqlite3.Row) -> StatusRecord:
    return StatusRecord(
        article_id=row["articleID"],
        read=bool(row["read"]),
        starred=bool(row["starred"]),
        user_deleted=bool(row["userDeleted"]),
        date_arrived=parse_timestamp(row["dateArrived"]) or utc_now(),
    )


def _chunked(values: Sequence[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(values), size):
        yield list(values[start : start + size])
