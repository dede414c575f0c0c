"""
Per-entry merge rules: how one form entry changes one status record.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from shared.models.domain import FormEntry, RecordWarning, StatusRecord
from shared.models.enums import DispatchStatus, WarningKind


class EntryOutcome(str, Enum):
    RECEIVED = "received"
    CODE_MISMATCH = "code-mismatch"
    WARNING_CLEARED = "warning-cleared"
    UNCHANGED = "unchanged"


def codes_match(record: StatusRecord, submitted: str) -> bool:
    return bool(record.dispatch_code) and record.dispatch_code == submitted


def mark_received(record: StatusRecord, at: datetime, form_name: str | None = None) -> None:
    record.status = DispatchStatus.RECEIVED
    record.received_at = at
    record.form_name = form_name
    record.warning = None


def apply_entry(record: StatusRecord, entry: FormEntry, submitted_at: datetime) -> EntryOutcome:
    """
    Apply ``entry`` to ``record`` in place.

    A wrong code attaches a ``code-mismatch`` warning and leaves the status
    alone. A matching code, or no code at all, marks the record received and
    clears any warning. Re-applying the same entry changes nothing.
    """
    if entry.password is not None and not codes_match(record, entry.password):
        if record.is_received:
            # received records never carry a mismatch warning
            return EntryOutcome.UNCHANGED
        warning = RecordWarning(
            kind=WarningKind.CODE_MISMATCH, code=entry.password, at=submitted_at
        )
        if warning.same_as(record.warning):
            return EntryOutcome.UNCHANGED
        record.warning = warning
        return EntryOutcome.CODE_MISMATCH

    if record.is_received:
        if record.warning is not None:
            record.warning = None
            return EntryOutcome.WARNING_CLEARED
        return EntryOutcome.UNCHANGED

    mark_received(record, submitted_at, entry.name)
    return EntryOutcome.RECEIVED
