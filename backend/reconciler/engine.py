"""
Reconciliation engine: apply acquired form entries to the status records.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from shared.models.domain import EPOCH, ReconcileResult, StatusRecord, utcnow
from shared.utils.logging import get_logger
from shared.utils.metrics import (
    RECONCILE_DURATION,
    RECONCILE_RUNS,
    RECORD_TRANSITIONS,
    atrack_latency,
)

from ingest.chain import AcquisitionChain
from reconciler.ledger import StatusLedger
from reconciler.merge import EntryOutcome, apply_entry

logger = get_logger(__name__)


class ReconciliationEngine:
    """
    One run:
      1. pick the effective cursor (EPOCH when the chain cannot be trusted
         with absolute timestamps);
      2. acquire entries;
      3. under the ledger's mutation gate, apply every entry newer than the
         cursor to its existing record;
      4. advance the persisted cursor and save only when something changed.
    """

    def __init__(
        self,
        ledger: StatusLedger,
        chain: AcquisitionChain,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ledger = ledger
        self._chain = chain
        self._clock = clock

    @property
    def chain(self) -> AcquisitionChain:
        return self._chain

    async def reconcile(self) -> ReconcileResult:
        """
        Run one reconciliation pass.

        Raises:
            AcquisitionError: A mandatory structured source could not be read.
        """
        try:
            async with atrack_latency(RECONCILE_DURATION):
                result = await self._run()
        except Exception:
            RECONCILE_RUNS.labels(result="error").inc()
            raise
        RECONCILE_RUNS.labels(result="updated" if result.updated else "unchanged").inc()
        return result

    async def _run(self) -> ReconcileResult:
        bypassed = self._chain.cursor_bypassed
        acquired = await self._chain.acquire()
        now = self._clock()

        applied = 0
        async with self._ledger.transaction() as tx:
            state = tx.state
            cursor = EPOCH if bypassed else state.cursor
            newest: Optional[datetime] = None
            changed = False
            # callsign -> (record as loaded, live record, last effective outcome)
            touched: dict[str, tuple[StatusRecord, StatusRecord, EntryOutcome]] = {}

            for entry in acquired.entries:
                callsign = entry.normalized_callsign
                if not callsign:
                    continue
                submitted_at = entry.submitted_at or now
                if submitted_at <= cursor:
                    continue
                # synthesized instants never move the cursor
                if entry.submitted_at is not None and (newest is None or entry.submitted_at > newest):
                    newest = entry.submitted_at

                record = state.find(callsign)
                if record is None:
                    logger.debug("unknown_recipient", callsign=callsign)
                    continue

                if callsign not in touched:
                    touched[callsign] = (
                        record.model_copy(deep=True), record, EntryOutcome.UNCHANGED
                    )
                try:
                    outcome = apply_entry(record, entry, submitted_at)
                except Exception:
                    logger.exception("entry_apply_failed", callsign=callsign)
                    continue
                if outcome != EntryOutcome.UNCHANGED:
                    original, _, _ = touched[callsign]
                    touched[callsign] = (original, record, outcome)

            # A batch may flip one record back and forth; only its net change counts.
            for callsign, (original, record, outcome) in touched.items():
                if record.warning is not None and record.warning.same_as(original.warning):
                    record.warning = original.warning
                if record == original:
                    continue
                changed = True
                applied += 1
                RECORD_TRANSITIONS.labels(kind=outcome.value).inc()
                logger.info(
                    "entry_applied",
                    callsign=callsign,
                    outcome=outcome.value,
                    source=acquired.source.value,
                )

            if not bypassed and newest is not None and newest > state.cursor:
                state.form_cursor = newest
                changed = True

            if changed:
                tx.mark_dirty()

        processed_at = self._clock()
        logger.info(
            "reconcile_done",
            source=acquired.source.value,
            entries=len(acquired.entries),
            applied=applied,
            updated=changed,
            cursor_bypassed=bypassed,
        )
        return ReconcileResult(
            updated=changed,
            processed_at=processed_at,
            source=acquired.source,
            entries_seen=len(acquired.entries),
            entries_applied=applied,
        )
