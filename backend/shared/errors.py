"""
Error taxonomy for entry acquisition, reconciliation and ledger operations.

Only ``AcquisitionError`` subclasses raised from a mandatory source reach the
caller of a reconciliation run; every other failure is logged and degraded
to "no entries this cycle" or "this entry ignored".
"""
from __future__ import annotations

from typing import Optional


class AcquisitionError(Exception):
    """A mandatory entry source could not be read."""


class FetchExhausted(AcquisitionError):
    """All fetch attempts against a URL failed."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"fetch failed after {attempts} attempts for {url}: {last_error}")


class SourceReadError(AcquisitionError):
    """A configured local entry document could not be read."""

    def __init__(self, path: str, error: BaseException) -> None:
        self.path = path
        self.error = error
        super().__init__(f"cannot read entry document {path}: {error}")


class EntryDecodeError(Exception):
    """A structured entry document is not valid JSON."""


class RefreshBusy(Exception):
    """A refresh is already in flight."""

    def __init__(self) -> None:
        super().__init__("refresh already running")


class InvalidCallsign(ValueError):
    """The call-sign is empty after normalization."""

    def __init__(self) -> None:
        super().__init__("callsign is required")


class RecordNotFound(LookupError):
    """No status record exists for the call-sign."""

    def __init__(self, callsign: str) -> None:
        self.callsign = callsign
        super().__init__("callsign not found")


class WorkflowDispatchError(Exception):
    """The scraping workflow could not be triggered."""
