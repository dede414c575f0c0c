"""Shared fixtures: isolated settings, a temp JSON store and an in-memory entry source."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from shared.config import Settings
from shared.models.domain import FormEntry, StatusRecord, StatusState
from shared.models.enums import SourceKind
from shared.store.json_file import JsonFileStatusStore

from ingest.sources.base import EntrySource

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    """Settings isolated from the environment: no remote sources, no token, no backoff."""
    values: dict[str, Any] = {
        "data_dir": tmp_path,
        "release_json_url": None,
        "analysis_page_url": None,
        "release_tag_enabled": False,
        "github_token": "",
        "insecure_tls": False,
        "fetch_backoff_step_s": 0,
        "fetch_max_attempts": 3,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class StaticSource(EntrySource):
    """In-memory source returning a fixed list of entries."""

    def __init__(
        self,
        entries: list[FormEntry],
        kind: SourceKind = SourceKind.MOCK,
        falls_through: bool = False,
    ) -> None:
        self.entries = entries
        self._kind = kind
        self.falls_through_when_empty = falls_through
        self.calls = 0

    @property
    def kind(self) -> SourceKind:
        return self._kind

    async def fetch_entries(self) -> list[FormEntry]:
        self.calls += 1
        return list(self.entries)


def fixed_clock(at: datetime = NOW):
    return lambda: at


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def store(tmp_path: Path) -> JsonFileStatusStore:
    return JsonFileStatusStore(tmp_path / "state.json")


@pytest_asyncio.fixture
async def seeded_store(store: JsonFileStatusStore) -> JsonFileStatusStore:
    """Store holding one dispatched record: BG4ABC with code 042517."""
    await store.save(
        StatusState(
            statuses=[
                StatusRecord(
                    callsign="BG4ABC",
                    dispatch_code="042517",
                    sent_at=datetime(2024, 4, 1, tzinfo=timezone.utc),
                )
            ]
        )
    )
    return store
