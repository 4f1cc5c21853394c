"""Pytest fixtures for the SQLite-backed storage layer."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

import pytest

from feed_to_mastodon.config.settings import DEFAULTS, ENV_PREFIX
from feed_to_mastodon.domain.models import Feed, FeedItem
from feed_to_mastodon.storage import EntryRepository, SettingsRepository
from feed_to_mastodon.storage.base_repository import DBConnection
from feed_to_mastodon.storage.database import get_connection


@pytest.fixture(autouse=True)
def _clear_app_env(monkeypatch) -> None:
    """Keep FEED_TO_MASTODON_* variables from the host out of tests."""

    for key in DEFAULTS:
        monkeypatch.delenv(ENV_PREFIX + key.upper(), raising=False)
    for key in [k for k in os.environ if k.startswith(ENV_PREFIX)]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Return a path for a fresh database file inside the test directory."""

    return tmp_path / "entries.db"


@pytest.fixture()
def db_conn(db_path: Path) -> Iterator[DBConnection]:
    """Return a DBConnection to a freshly migrated database."""

    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture()
def entry_repo(db_conn) -> EntryRepository:
    return EntryRepository(db_conn)


@pytest.fixture()
def settings_repo(db_conn) -> SettingsRepository:
    return SettingsRepository(db_conn)


@pytest.fixture()
def sample_items() -> list[FeedItem]:
    """Three feed items with distinct GUIDs."""

    return [
        FeedItem(
            title=f"Post {n}",
            link=f"https://example.com/posts/{n}",
            guid=f"https://example.com/posts/{n}",
            published=f"Mon, 0{n} Jan 2024 10:00:00 +0000",
            description=f"Summary of post {n}",
        )
        for n in (1, 2, 3)
    ]


@pytest.fixture()
def sample_feed(sample_items) -> Feed:
    return Feed(
        title="Example Blog",
        link="https://example.com/",
        description="Posts from an example blog",
        language="en",
        items=sample_items,
    )
