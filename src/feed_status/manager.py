from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from typing import Any, TypeVar

from feed_status.cache import StatusCache
from feed_status.models import Article, ParsedItem, StatusKey, StatusRecord
from feed_status.store import StatusStore
from feed_status.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[], None]
T = TypeVar("T")


class MissingStatusError(AssertionError):
    """Raised when a status mutation is attempted for an entity without a status."""


class StatusManager:
    """Coordinates the status cache and the status store.

    The manager is the only writer of both. Cache access is serialized by a
    lock; store calls run one at a time, in submission order, on a dedicated
    worker thread. Completion callbacks run on a separate thread, so caller
    code never holds up the store worker. Reads that need the store return
    futures, writes are queued without waiting.
    """

    def __init__(
        self,
        store: StatusStore,
        *,
        strict_preconditions: bool = True,
        cache: StatusCache | None = None,
    ) -> None:
        self.store = store
        self.strict_preconditions = strict_preconditions
        self._cache = cache if cache is not None else StatusCache()
        self._lock = threading.Lock()
        self._queue = ThreadPoolExecutor(max_workers=1, thread_name_prefix="feed-status-db")
        self._callbacks = ThreadPoolExecutor(max_workers=1, thread_name_prefix="feed-status-callbacks")
        self._pending: set[Future[Any]] = set()
        self._settled = threading.Condition(self._lock)
        self._local = threading.local()

    def __enter__(self) -> StatusManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def cached_status(self, article_id: str) -> StatusRecord | None:
        with self._lock:
            return self._cache.lookup(article_id)

    def attach_cached_statuses(self, articles: Iterable[Article]) -> None:
        with self._lock:
            for article in articles:
                cached = self._cache.lookup(article.article_id)
                if cached is not None:
                    article.status = cached
                elif article.status is not None:
                    self._cache.insert(article.status)

    def ensure_statuses(
        self,
        article_ids: Iterable[str],
        callback: CompletionCallback | None = None,
    ) -> Future[set[str]]:
        """Make sure every id has a status, creating defaults for unknown ids.

        The returned future resolves to the ids that got a new status. The
        callback runs exactly once, after the creation write is queued: on the
        calling thread when everything is cached, otherwise on the callback
        thread.
        """
        with self._lock:
            missing = self._cache.missing_ids(article_ids)

        if not missing:
            return _completed(set(), callback)

        logger.debug("Fetching %d uncached statuses", len(missing))
        result: Future[set[str]] = Future()
        if callback is not None:
            result.add_done_callback(partial(self._schedule_callback, callback))
        self._track(result)
        self._fetch_then(missing, result, partial(self._create_unresolved, missing))
        return result

    def ensure_statuses_for_parsed_items(
        self,
        items: Iterable[ParsedItem],
        callback: CompletionCallback | None = None,
    ) -> Future[set[str]]:
        return self.ensure_statuses({item.article_id for item in items}, callback)

    def load_statuses(self, article_ids: Iterable[str]) -> Future[dict[str, StatusRecord]]:
        """Resolve existing statuses for the ids without creating any."""
        found: dict[str, StatusRecord] = {}
        missing: set[str] = set()
        with self._lock:
            for article_id in set(article_ids):
                record = self._cache.lookup(article_id)
                if record is None:
                    missing.add(article_id)
                else:
                    found[article_id] = record

        if not missing:
            return _completed(found)

        result: Future[dict[str, StatusRecord]] = self._track(Future())
        self._fetch_then(missing, result, partial(self._collect_loaded, missing, found))
        return result

    def mark_articles(self, articles: Iterable[Article], key: StatusKey | str, flag: bool) -> set[str]:
        articles = list(articles)
        without_status = sum(1 for article in articles if article.status is None)
        if without_status:
            self._missing_status("All articles must have a status at this point.", without_status)
        statuses = [article.status for article in articles if article.status is not None]
        return self.mark_statuses(statuses, key, flag)

    def mark_statuses(
        self,
        records: Iterable[StatusRecord | None],
        key: StatusKey | str,
        flag: bool,
    ) -> set[str]:
        """Set one flag on the records, writing only those that change.

        Cache values change before this returns; the store update is queued
        as a single statement and not awaited.
        """
        key = StatusKey.parse(key)
        flag = bool(flag)
        records = list(records)
        without_status = sum(1 for record in records if record is None)
        if without_status:
            self._missing_status("Status records must not be None.", without_status)

        changed: set[str] = set()
        with self._lock:
            for record in records:
                if record is None or record.bool_status(key) == flag:
                    continue
                record.set_bool_status(flag, key)
                changed.add(record.article_id)

            if changed:
                logger.debug("Marking %d statuses %s=%s", len(changed), key.value, flag)
                self._submit_write(
                    f"update {key.value}={flag} for {len(changed)} statuses",
                    self.store.bulk_update,
                    key,
                    flag,
                    frozenset(changed),
                )
        return changed

    def save_statuses(self, records: Iterable[StatusRecord]) -> None:
        """Queue an insert-or-ignore of the records.

        The cache is left alone: a stored row may win over these values, so
        they are only cached once read back through ensure_statuses.
        """
        records = list(records)
        if not records:
            return
        with self._lock:
            self._submit_write(
                f"save {len(records)} statuses",
                self.store.bulk_insert_ignore,
                [replace(record) for record in records],
            )

    def flush(self, timeout: float | None = None) -> None:
        """Block until every write requested so far has run.

        Outstanding ensure/load calls are waited for first, since they queue
        their writes only once their read completes, then completion
        callbacks, then the store queue. From inside a completion callback
        the callback thread itself is not waited for.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._settled:
            if not self._settled.wait_for(lambda: not self._pending, timeout=_remaining(deadline)):
                raise TimeoutError(f"{len(self._pending)} status lookups still running")
        if not getattr(self._local, "in_callback", False):
            self._callbacks.submit(lambda: None).result(timeout=_remaining(deadline))
        self._queue.submit(lambda: None).result(timeout=_remaining(deadline))

    def close(self) -> None:
        self.flush()
        self._callbacks.shutdown(wait=True)
        self._queue.shutdown(wait=True)

    def _track(self, future: Future[T]) -> Future[T]:
        # Registered after any callback scheduling, so settling implies the callback is queued.
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._untrack)
        return future

    def _untrack(self, future: Future[Any]) -> None:
        with self._settled:
            self._pending.discard(future)
            self._settled.notify_all()

    def _fetch_then(
        self,
        article_ids: set[str],
        result: Future[Any],
        on_fetched: Callable[[list[StatusRecord]], Any],
    ) -> None:
        try:
            fetch = self._queue.submit(self.store.bulk_lookup, frozenset(article_ids))
        except RuntimeError as exc:
            result.set_exception(exc)
            raise
        fetch.add_done_callback(partial(self._after_fetch, result=result, on_fetched=on_fetched))

    def _schedule_callback(self, callback: CompletionCallback, future: Future[Any]) -> None:
        # Never run caller code on the store worker: it may wait on the store.
        if future.exception() is None:
            self._callbacks.submit(self._run_callback, callback)

    def _run_callback(self, callback: CompletionCallback) -> None:
        self._local.in_callback = True
        try:
            callback()
        except Exception:  # noqa: BLE001
            logger.exception("Status completion callback failed")
        finally:
            self._local.in_callback = False

    def _after_fetch(
        self,
        fetch: Future[list[StatusRecord]],
        *,
        result: Future[Any],
        on_fetched: Callable[[list[StatusRecord]], Any],
    ) -> None:
        try:
            fetched = fetch.result()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Status lookup failed: %s", exc)
            result.set_exception(exc)
            return

        try:
            value = on_fetched(fetched)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to apply fetched statuses")
            result.set_exception(exc)
            return
        result.set_result(value)

    def _create_unresolved(self, requested: set[str], fetched: list[StatusRecord]) -> set[str]:
        with self._lock:
            self._cache.insert_missing(fetched)
            # Ids found by the fetch are cached now and never get a default.
            still_missing = self._cache.missing_ids(requested)
            if not still_missing:
                return set()

            now = utc_now()
            statuses = [
                StatusRecord(article_id=article_id, date_arrived=now)
                for article_id in sorted(still_missing)
            ]
            logger.debug("Creating %d new statuses", len(statuses))
            # Insert-or-ignore: a row written concurrently by another creator wins in the store.
            self._submit_write(
                f"create {len(statuses)} statuses",
                self.store.bulk_insert_ignore,
                [replace(status) for status in statuses],
            )
            # Cached only once the write is queued, so the cache never holds unpersisted rows.
            self._cache.insert_missing(statuses)
        return still_missing

    def _collect_loaded(
        self,
        requested: set[str],
        found: dict[str, StatusRecord],
        fetched: list[StatusRecord],
    ) -> dict[str, StatusRecord]:
        with self._lock:
            self._cache.insert_missing(fetched)
            for article_id in requested:
                record = self._cache.lookup(article_id)
                if record is not None:
                    found[article_id] = record
        return found

    def _submit_write(self, description: str, fn: Callable[..., None], *args: Any) -> None:
        write = self._queue.submit(fn, *args)
        write.add_done_callback(partial(_log_dropped_write, description))

    def _missing_status(self, message: str, skipped: int) -> None:
        if self.strict_preconditions:
            raise MissingStatusError(message)
        logger.warning("%s Skipping %d entries without a status.", message, skipped)


def _completed(value: T, callback: CompletionCallback | None = None) -> Future[T]:
    future: Future[T] = Future()
    future.set_result(value)
    if callback is not None:
        callback()
    return future


def _log_dropped_write(description: str, write: Future[None]) -> None:
    exc = write.exception()
    if exc is not None:
        logger.error("Dropped status write (%s): %s", description, exc, exc_info=exc)


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())
