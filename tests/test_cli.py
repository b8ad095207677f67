from __future__ import annotations

from pathlib import Path

import pytest

from feed_status.cli import main
from feed_status.store import SQLiteStatusStore

FEED_URL = "https://a.example/feed"

_FEED_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <item><title>A</title><guid isPermaLink="false">A</guid></item>
    <item><title>B</title><guid isPermaLink="false">B</guid></item>
    <item><title>C</title><guid isPermaLink="false">C</guid></item>
  </channel>
</rss>
"""


class _DummyResponse:
    content = _FEED_XML

    def raise_for_status(self) -> None:
        return None


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
feeds:
  - id: example
    type: rss
    url: {FEED_URL}
storage:
  path: statuses.sqlite
""",
        encoding="utf-8",
    )
    return path


def test_init_db_creates_database(config_path: Path) -> None:
    assert main(["-c", str(config_path), "init-db"]) == 0
    assert (config_path.parent / "statuses.sqlite").exists()


def test_ingest_mark_and_show(
    config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr("requests.get", lambda *args, **kwargs: _DummyResponse())
    ids = [f"{FEED_URL} {key}" for key in "ABC"]

    assert main(["-c", str(config_path), "ingest"]) == 0
    assert main(["-c", str(config_path), "ingest"]) == 0

    store = SQLiteStatusStore(str(config_path.parent / "statuses.sqlite"))
    assert sorted(record.article_id for record in store.bulk_lookup(ids)) == ids

    assert main(["-c", str(config_path), "mark", "--key", "read", "--set", ids[0], ids[1]]) == 0

    capsys.readouterr()
    assert main(["-c", str(config_path), "show", *ids]) == 0
    output = capsys.readouterr().out
    assert f"{ids[0]}: read=True starred=False userDeleted=False" in output
    assert f"{ids[1]}: read=True" in output
    assert f"{ids[2]}: read=False" in output


def test_mark_reports_unknown_ids(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-c", str(config_path), "mark", "--key", "starred", "--clear", "nope"]) == 1

    assert main(["-c", str(config_path), "show", "nope"]) == 1
    assert "nope: no status" in capsys.readouterr().out


def test_config_error_exits_with_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-c", str(tmp_path / "missing.yaml"), "init-db"]) == 2
    assert "Config error" in capsys.readouterr().err


def test_ingest_requires_feeds(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("storage:\n  path: statuses.sqlite\n", encoding="utf-8")

    assert main(["-c", str(path), "ingest"]) == 2
    assert "at least one feed" in capsys.readouterr().err
