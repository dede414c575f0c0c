"""
Decoding of structured entry documents.

Accepted shapes: a bare JSON array of entries, or an object with an
``entries`` array (the export format also carries ``generatedAt`` and
``count``, which are ignored here).
"""
from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from shared.errors import EntryDecodeError
from shared.models.domain import FormEntry
from shared.utils.logging import get_logger

logger = get_logger(__name__)


def decode_entry_document(raw: bytes | str) -> list[dict[str, Any]]:
    """
    Parse an entry document into its list of raw entry objects.

    Raises:
        EntryDecodeError: If the payload is not valid JSON.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise EntryDecodeError(str(exc)) from exc

    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("entries"), list):
        items = payload["entries"]
    else:
        items = []
    return [item for item in items if isinstance(item, dict)]


def to_form_entries(items: list[dict[str, Any]]) -> list[FormEntry]:
    """Validate raw entry objects, dropping the ones that cannot be read at all."""
    entries: list[FormEntry] = []
    for item in items:
        try:
            entries.append(FormEntry.model_validate(item))
        except ValidationError as exc:
            logger.warning("entry_invalid", entry=item, error=str(exc))
    return entries
