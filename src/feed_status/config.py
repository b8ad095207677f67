from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """Raised when configuration is invalid."""


@dataclass(slots=True)
class SourceSettings:
    id: str
    type: str
    url: str
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class StorageSettings:
    type: str = "sqlite"
    path: str = "data/statuses.sqlite"


@dataclass(slots=True)
class ManagerSettings:
    strict_preconditions: bool = True


@dataclass(slots=True)
class AppConfig:
    feeds: list[SourceSettings] = field(default_factory=list)
    storage: StorageSettings = field(default_factory=StorageSettings)
    manager: ManagerSettings = field(default_factory=ManagerSettings)
    log_level: str = "INFO"


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in {0, 1}:
        return bool(value)

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False

    raise ConfigError(f"{field_name} must be a boolean")


def _as_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    value = value or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    return value


def _resolve_relative_path(config_path: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((config_path.parent / candidate).resolve())


def _parse_feeds(raw_feeds: Any) -> list[SourceSettings]:
    if raw_feeds is None:
        return []
    if not isinstance(raw_feeds, list):
        raise ConfigError("feeds must be a list")

    feeds: list[SourceSettings] = []
    for index, feed in enumerate(raw_feeds, start=1):
        if not isinstance(feed, dict):
            raise ConfigError(f"Feed entry #{index} must be a mapping")

        feed_id = str(feed.get("id", "")).strip()
        feed_type = str(feed.get("type", "rss")).strip() or "rss"
        feed_url = str(feed.get("url", "")).strip()
        if not feed_id or not feed_url:
            raise ConfigError(f"Feed entry #{index} missing one of: id, url")

        options = {key: value for key, value in feed.items() if key not in {"id", "type", "url"}}
        feeds.append(SourceSettings(id=feed_id, type=feed_type, url=feed_url, options=options))
    return feeds


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle) or {}

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping")

    feeds = _parse_feeds(parsed.get("feeds"))

    raw_storage = _as_mapping(parsed.get("storage"), field_name="storage")
    storage_type = str(raw_storage.get("type", "sqlite")).strip() or "sqlite"
    if storage_type != "sqlite":
        raise ConfigError(f"Unsupported storage type: {storage_type}")
    storage_path = str(raw_storage.get("path", "data/statuses.sqlite")).strip() or "data/statuses.sqlite"
    storage_settings = StorageSettings(
        type=storage_type,
        path=_resolve_relative_path(config_path, storage_path),
    )

    raw_manager = _as_mapping(parsed.get("manager"), field_name="manager")
    manager_settings = ManagerSettings(
        strict_preconditions=_as_bool(
            raw_manager.get("strict_preconditions", True),
            field_name="manager.strict_preconditions",
        ),
    )

    return AppConfig(
        feeds=feeds,
        storage=storage_settings,
        manager=manager_settings,
        log_level=str(parsed.get("log_level", "INFO")).upper(),
    )
