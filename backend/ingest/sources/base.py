"""
Base interface for form entry sources.
Each source produces raw form entries, or an empty list when it has nothing.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from shared.models.domain import FormEntry
from shared.models.enums import SourceKind


class EntrySource(ABC):
    """One way of obtaining the externally submitted confirmations."""

    # When True, an empty result hands over to the next source in the chain.
    falls_through_when_empty: bool = False

    @property
    @abstractmethod
    def kind(self) -> SourceKind:
        pass

    @abstractmethod
    async def fetch_entries(self) -> list[FormEntry]:
        """
        Produce the current entries, in source order.

        Decode problems are logged and yield an empty list. Only a failure to
        reach a mandatory source (``AcquisitionError``) is raised.
        """
        pass
