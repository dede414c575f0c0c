"""
Local mock source: a JSON file of entries, used when nothing else is configured.
"""
from __future__ import annotations

import asyncio
from pathlib import Path

from shared.errors import EntryDecodeError, SourceReadError
from shared.models.domain import FormEntry
from shared.models.enums import SourceKind
from shared.utils.logging import get_logger

from ingest.documents import decode_entry_document, to_form_entries
from ingest.sources.base import EntrySource

logger = get_logger(__name__)


class MockFileSource(EntrySource):
    """Reads entries from a local file; a missing file means no entries."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def kind(self) -> SourceKind:
        return SourceKind.MOCK

    async def fetch_entries(self) -> list[FormEntry]:
        try:
            raw = await asyncio.to_thread(self._path.read_bytes)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise SourceReadError(str(self._path), exc) from exc
        try:
            items = decode_entry_document(raw)
        except EntryDecodeError as exc:
            logger.error("mock_entries_parse_failed", path=str(self._path), error=str(exc))
            return []
        return to_form_entries(items)
