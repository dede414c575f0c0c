"""
Abstract status store.
Persists the whole ``StatusState`` document (records plus cursor) as one unit.
"""
from __future__ import annotations

import abc

from shared.models.domain import StatusState


class StatusStore(abc.ABC):
    """Persistent mapping from normalized call-sign to status record, plus the cursor."""

    @property
    @abc.abstractmethod
    def location(self) -> str:
        """Human-readable location for logs."""
        ...

    @abc.abstractmethod
    async def load(self) -> StatusState:
        """Return the current document; an empty state when nothing is stored yet."""
        ...

    @abc.abstractmethod
    async def save(self, state: StatusState) -> None:
        """Replace the stored document."""
        ...
