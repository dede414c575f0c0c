"""
Component wiring shared by the API, the scheduler and the operator scripts.
"""
from __future__ import annotations

from typing import Optional

from shared.config import Settings, StoreBackend, get_settings
from shared.store.base import StatusStore
from shared.store.factory import build_store
from shared.utils.http_client import SourceFetcher
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

from ingest.chain import AcquisitionChain
from reconciler.engine import ReconciliationEngine
from reconciler.ledger import StatusLedger
from reconciler.refresh import RefreshGate, RefreshService
from reconciler.workflow import WorkflowTrigger

logger = get_logger(__name__)


class Runtime:
    """Owns the long-lived collaborators of one process and their lifecycle."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.redis: Optional[RedisManager] = None
        self.fetcher = SourceFetcher(self.settings)
        self.store: Optional[StatusStore] = None
        self.ledger: Optional[StatusLedger] = None
        self.chain = AcquisitionChain.from_settings(self.fetcher, self.settings)
        self.engine: Optional[ReconciliationEngine] = None
        self.gate = RefreshGate()
        self.refresh: Optional[RefreshService] = None

    async def start(self) -> "Runtime":
        if self.settings.store_backend == StoreBackend.REDIS:
            self.redis = RedisManager(self.settings)
            await self.redis.connect()
        self.store = build_store(self.settings, self.redis)
        await self.fetcher.start()

        self.ledger = StatusLedger(self.store)
        self.engine = ReconciliationEngine(self.ledger, self.chain)
        self.refresh = RefreshService(
            self.engine, self.gate, WorkflowTrigger(self.settings)
        )
        logger.info(
            "runtime_started",
            store=self.store.location,
            sources=[source.kind.value for source in self.chain.sources],
            cursor_bypassed=self.chain.cursor_bypassed,
        )
        return self

    async def close(self) -> None:
        await self.fetcher.close()
        if self.redis is not None:
            await self.redis.disconnect()
            self.redis = None

    async def __aenter__(self) -> "Runtime":
        return await self.start()

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
