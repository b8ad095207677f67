from __future__ import annotations

import argparse
import logging
import sys

from feed_status.config import AppConfig, ConfigError, load_config
from feed_status.logging_config import setup_logging
from feed_status.manager import StatusManager
from feed_status.models import StatusKey
from feed_status.sources import Source, create_source
from feed_status.store import SQLiteStatusStore
from feed_status.utils.timestamps import format_timestamp

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feed-status",
        description="Track read, starred and deleted flags for feed articles.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to config YAML file (default: config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Initialize SQLite schema")
    subparsers.add_parser("ingest", help="Fetch configured feeds and create statuses for new items")

    mark = subparsers.add_parser("mark", help="Set or clear a flag on existing statuses")
    mark.add_argument(
        "--key",
        required=True,
        choices=[key.value for key in StatusKey],
        help="Flag to change",
    )
    value = mark.add_mutually_exclusive_group(required=True)
    value.add_argument("--set", dest="flag", action="store_true", help="Set the flag")
    value.add_argument("--clear", dest="flag", action="store_false", help="Clear the flag")
    mark.add_argument("article_ids", nargs="+", metavar="ARTICLE_ID")

    show = subparsers.add_parser("show", help="Print stored statuses")
    show.add_argument("article_ids", nargs="+", metavar="ARTICLE_ID")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    setup_logging(args.log_level or app_config.log_level)

    store = SQLiteStatusStore(app_config.storage.path)
    store.init_db()
    if args.command == "init-db":
        logger.info("Initialized SQLite database at %s", app_config.storage.path)
        return 0

    with StatusManager(store, strict_preconditions=app_config.manager.strict_preconditions) as manager:
        if args.command == "ingest":
            try:
                sources = _build_sources(app_config)
            except ValueError as exc:
                print(f"Config error: {exc}", file=sys.stderr)
                return 2
            return _run_ingest(manager=manager, sources=sources)
        if args.command == "mark":
            return _run_mark(
                manager=manager,
                key=StatusKey.parse(args.key),
                flag=args.flag,
                article_ids=args.article_ids,
            )
        return _run_show(manager=manager, article_ids=args.article_ids)


def _build_sources(app_config: AppConfig) -> list[Source]:
    if not app_config.feeds:
        raise ConfigError("Config must define at least one feed to ingest")
    return [create_source(feed) for feed in app_config.feeds]


def _run_ingest(*, manager: StatusManager, sources: list[Source]) -> int:
    errors = 0
    created_total = 0

    for source in sources:
        try:
            items = source.fetch()
        except Exception as exc:  # noqa: BLE001
            errors += 1
            logger.exception("ingest fetch failed for %s: %s", source.source_id, exc)
            continue

        try:
            created = manager.ensure_statuses_for_parsed_items(items).result()
        except Exception as exc:  # noqa: BLE001
            errors += 1
            logger.exception("failed to ensure statuses for %s: %s", source.source_id, exc)
            continue

        created_total += len(created)
        logger.info("Source %s | items=%d new_statuses=%d", source.source_id, len(items), len(created))

    manager.flush()
    logger.info("Ingest complete | new_statuses=%d errors=%d", created_total, errors)
    return 0 if errors == 0 else 1


def _run_mark(*, manager: StatusManager, key: StatusKey, flag: bool, article_ids: list[str]) -> int:
    found = manager.load_statuses(article_ids).result()
    unknown = [article_id for article_id in article_ids if article_id not in found]
    for article_id in unknown:
        logger.error("No status stored for %s", article_id)

    changed = manager.mark_statuses(found.values(), key, flag)
    manager.flush()
    logger.info(
        "Marked %s=%s | changed=%d unchanged=%d",
        key.value,
        flag,
        len(changed),
        len(found) - len(changed),
    )
    return 0 if not unknown else 1


def _run_show(*, manager: StatusManager, article_ids: list[str]) -> int:
    found = manager.load_statuses(article_ids).result()
    for article_id in article_ids:
        record = found.get(article_id)
        if record is None:
            print(f"{article_id}: no status")
            continue
        print(
            f"{article_id}: read={record.read} starred={record.starred} "
            f"userDeleted={record.user_deleted} arrived={format_timestamp(record.date_arrived)}"
        )
    return 0 if len(found) == len(set(article_ids)) else 1


if __name__ == "__main__":
    raise SystemExit(main())
