"""
Status ledger: every read-modify-write of the status store goes through here.

One ``asyncio.Lock`` serializes manual actions (dispatch, mark received,
resolve warning) and the apply phase of reconciliation, so they can never
overwrite each other's changes.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from shared.errors import InvalidCallsign, RecordNotFound
from shared.models.domain import (
    StatusRecord,
    StatusState,
    generate_dispatch_code,
    normalize_callsign,
    utcnow,
)
from shared.models.enums import DispatchStatus, ResolveAction
from shared.store.base import StatusStore
from shared.utils.logging import get_logger
from shared.utils.metrics import RECORD_TRANSITIONS

from reconciler.merge import mark_received

logger = get_logger(__name__)


class LedgerTransaction:
    """Loaded state handed to a caller holding the mutation gate."""

    def __init__(self, state: StatusState) -> None:
        self.state = state
        self.dirty = False

    def mark_dirty(self) -> None:
        self.dirty = True


class StatusLedger:
    """Owns the status store and the lock that serializes all writes to it."""

    def __init__(
        self,
        store: StatusStore,
        clock: Callable[[], datetime] = utcnow,
        code_factory: Callable[[], str] = generate_dispatch_code,
    ) -> None:
        self._store = store
        self._clock = clock
        self._code_factory = code_factory
        self._lock = asyncio.Lock()

    @property
    def store(self) -> StatusStore:
        return self._store

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[LedgerTransaction]:
        """Load the state under the gate; persist it on exit if marked dirty."""
        async with self._lock:
            tx = LedgerTransaction(await self._store.load())
            yield tx
            if tx.dirty:
                await self._store.save(tx.state)

    async def snapshot(self) -> StatusState:
        return await self._store.load()

    async def list_statuses(self) -> list[StatusRecord]:
        return (await self._store.load()).statuses

    @staticmethod
    def _require_callsign(callsign: Optional[str]) -> str:
        normalized = normalize_callsign(callsign)
        if not normalized:
            raise InvalidCallsign()
        return normalized

    @staticmethod
    def _require_record(state: StatusState, callsign: str) -> StatusRecord:
        record = state.find(callsign)
        if record is None:
            raise RecordNotFound(callsign)
        return record

    async def dispatch(self, callsign: Optional[str], name: Optional[str] = None) -> StatusRecord:
        """
        Create a record with a fresh code, or re-dispatch an existing one.

        Re-dispatch starts a new exchange: status goes back to ``sent`` and the
        previous receipt time, form name and warning are cleared.
        """
        normalized = self._require_callsign(callsign)
        async with self.transaction() as tx:
            existing = tx.state.find(normalized)
            record = StatusRecord(
                callsign=normalized,
                name=name,
                dispatch_code=self._code_factory(),
                sent_at=self._clock(),
                status=DispatchStatus.SENT,
            )
            tx.state.upsert(record)
            tx.mark_dirty()
        RECORD_TRANSITIONS.labels(kind="dispatched").inc()
        logger.info(
            "dispatch_created",
            callsign=normalized,
            code=record.dispatch_code,
            redispatch=existing is not None,
        )
        return record

    async def mark_received(
        self, callsign: Optional[str], received_at: Optional[datetime] = None
    ) -> StatusRecord:
        """Manually confirm receipt."""
        normalized = self._require_callsign(callsign)
        async with self.transaction() as tx:
            record = self._require_record(tx.state, normalized)
            record.status = DispatchStatus.RECEIVED
            record.received_at = received_at or self._clock()
            record.warning = None
            tx.mark_dirty()
        RECORD_TRANSITIONS.labels(kind="manual_received").inc()
        logger.info("manual_mark_received", callsign=normalized)
        return record

    async def resolve_warning(self, callsign: Optional[str], action: ResolveAction) -> StatusRecord:
        """Clear a warning, optionally confirming receipt at the same time."""
        normalized = self._require_callsign(callsign)
        async with self.transaction() as tx:
            record = self._require_record(tx.state, normalized)
            if action == ResolveAction.CONFIRM:
                mark_received(record, self._clock(), record.form_name)
            else:
                record.warning = None
            tx.mark_dirty()
        RECORD_TRANSITIONS.labels(kind=f"warning_{action.value}").inc()
        logger.info("resolve_warning", callsign=normalized, action=action.value)
        return record
