"""
Structured release source: a JSON entry list at a URL or a local path.
"""
from __future__ import annotations

import asyncio
import re
from pathlib import Path

from shared.errors import EntryDecodeError, SourceReadError
from shared.models.domain import FormEntry
from shared.models.enums import SourceKind
from shared.utils.http_client import ACCEPT_JSON, SourceFetcher
from shared.utils.logging import get_logger

from ingest.documents import decode_entry_document, to_form_entries
from ingest.sources.base import EntrySource

logger = get_logger(__name__)

HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


class ReleaseJsonSource(EntrySource):
    """Reads the configured entry document; fetch failures propagate."""

    def __init__(self, location: str, fetcher: SourceFetcher, base_dir: Path) -> None:
        self._location = location
        self._fetcher = fetcher
        self._base_dir = Path(base_dir)

    @property
    def kind(self) -> SourceKind:
        return SourceKind.RELEASE

    @property
    def is_remote(self) -> bool:
        return bool(HTTP_URL_RE.match(self._location))

    def _local_path(self) -> Path:
        path = Path(self._location)
        return path if path.is_absolute() else self._base_dir / path

    async def _read(self) -> bytes:
        if self.is_remote:
            return await self._fetcher.fetch(self._location, headers=ACCEPT_JSON)
        path = self._local_path()
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise SourceReadError(str(path), exc) from exc

    async def fetch_entries(self) -> list[FormEntry]:
        raw = await self._read()
        try:
            items = decode_entry_document(raw)
        except EntryDecodeError as exc:
            logger.error("release_json_parse_failed", location=self._location, error=str(exc))
            return []
        entries = to_form_entries(items)
        logger.info("release_entries", location=self._location, count=len(entries))
        return entries
