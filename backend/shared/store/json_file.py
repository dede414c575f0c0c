"""
JSON file status store.

Layout: ``{"statuses": [...], "formCursor": "...|null"}``. Writes go to a
temporary file in the same directory and are moved into place, so a crash
never leaves a half-written document behind.
"""
from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path

from shared.models.domain import StatusState
from shared.store.base import StatusStore
from shared.utils.logging import get_logger

logger = get_logger(__name__)


def _atomic_write_json(path: Path, data: dict) -> None:
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)
    tmp_path = ""
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=directory, encoding="utf-8", suffix=".tmp"
        ) as tmp:
            json.dump(data, tmp, ensure_ascii=False, indent=2)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp_path = tmp.name
        os.replace(tmp_path, path)
        tmp_path = ""
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)


class JsonFileStatusStore(StatusStore):
    """Status store backed by a single JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def location(self) -> str:
        return str(self._path)

    def _read(self) -> StatusState:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return StatusState()
        try:
            return StatusState.model_validate(json.loads(raw))
        except ValueError as exc:
            # Refuse to continue on a corrupt document rather than overwrite it.
            logger.error("state_file_invalid", path=str(self._path), error=str(exc))
            raise

    async def load(self) -> StatusState:
        return await asyncio.to_thread(self._read)

    async def save(self, state: StatusState) -> None:
        await asyncio.to_thread(_atomic_write_json, self._path, state.to_wire())
        logger.debug("state_saved", path=str(self._path), records=len(state.statuses))
