"""
Refresh admission and orchestration.

A refresh optionally triggers the upstream scraping workflow, then runs one
reconciliation. Only one refresh (or scheduled poll) runs at a time; a second
request is rejected immediately instead of queueing.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Optional

from shared.errors import RefreshBusy
from shared.models.domain import ReconcileResult, utcnow
from shared.utils.logging import get_logger
from shared.utils.metrics import REFRESH_REJECTED

from reconciler.engine import ReconciliationEngine
from reconciler.workflow import WorkflowTrigger

logger = get_logger(__name__)


class RefreshGate:
    """Single-slot admission flag; never waits."""

    def __init__(self) -> None:
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[None]:
        if self._busy:
            REFRESH_REJECTED.inc()
            raise RefreshBusy()
        self._busy = True
        try:
            yield
        finally:
            self._busy = False


class RefreshService:
    def __init__(
        self,
        engine: ReconciliationEngine,
        gate: RefreshGate,
        workflow: Optional[WorkflowTrigger] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._engine = engine
        self._gate = gate
        self._workflow = workflow
        self._clock = clock

    @property
    def gate(self) -> RefreshGate:
        return self._gate

    async def refresh(self) -> dict[str, Any]:
        """
        Trigger the workflow (when configured) and reconcile.

        Raises:
            RefreshBusy: Another refresh holds the gate.
            Exception: Whatever the workflow trigger or reconciliation raised;
                the gate is released either way.
        """
        async with self._gate.admit():
            started_at = self._clock()
            try:
                if self._workflow is not None:
                    dispatch = await self._workflow.trigger()
                else:
                    dispatch = {"skipped": True, "reason": "disabled"}
                sync = await self._engine.reconcile()
            except Exception as exc:
                logger.error("refresh_failed", error=str(exc), exc_type=type(exc).__name__)
                raise
            logger.info(
                "refresh_done",
                dispatch_skipped=dispatch.get("skipped"),
                updated=sync.updated,
            )
            return {
                "ok": True,
                "startedAt": started_at.isoformat(),
                "dispatch": dispatch,
                "sync": sync.to_wire(),
            }

    async def reconcile_if_idle(self) -> Optional[ReconcileResult]:
        """Run one reconciliation unless a refresh is in flight; None when skipped."""
        try:
            async with self._gate.admit():
                return await self._engine.reconcile()
        except RefreshBusy:
            logger.info("poll_skipped_busy")
            return None
