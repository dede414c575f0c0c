"""
Scheduler service for the QSL tracker.
Runs a reconciliation every ``poll_interval_s`` through the same admission
gate as manual refreshes, so a scheduled poll never overlaps one.
"""
from __future__ import annotations

import asyncio
import signal

from shared.config import Settings, get_settings
from shared.utils.log_sink import LogConfigStore
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from reconciler.refresh import RefreshService
from reconciler.runtime import Runtime

logger = get_logger(__name__)


class PollScheduler:
    """Periodic reconciliation loop; errors are logged and the loop keeps going."""

    def __init__(self, refresh: RefreshService, settings: Settings | None = None) -> None:
        self._refresh = refresh
        self._settings = settings or get_settings()
        self._shutdown = asyncio.Event()
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    async def tick(self) -> None:
        """Run one scheduled reconciliation; never raises except on cancellation."""
        self._ticks += 1
        try:
            result = await self._refresh.reconcile_if_idle()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("poll_failed", error=str(exc), exc_info=True)
            return
        if result is not None:
            logger.info(
                "poll_done",
                updated=result.updated,
                source=result.source.value if result.source else None,
                entries=result.entries_seen,
            )

    async def run(self) -> None:
        """Main loop: tick, then wait for the interval or a shutdown request."""
        interval = self._settings.poll_interval_s
        logger.info("poll_scheduler_started", interval_s=interval)
        while not self._shutdown.is_set():
            try:
                await self.tick()
                try:
                    await asyncio.wait_for(self._shutdown.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
            except asyncio.CancelledError:
                break
        logger.info("poll_scheduler_stopped")

    def request_shutdown(self) -> None:
        self._shutdown.set()


async def main() -> None:
    """Scheduler service entrypoint."""
    settings = get_settings()
    log_config = LogConfigStore.from_settings(settings)
    setup_logging("scheduler", settings, log_config)
    start_metrics_server(settings)

    async with Runtime(settings) as runtime:
        service = PollScheduler(runtime.refresh, settings)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, service.request_shutdown)
            except NotImplementedError:
                pass

        logger.info("scheduler_service_started", instance_id=settings.instance_id)
        try:
            await service.run()
        finally:
            logger.info("scheduler_service_stopped")


if __name__ == "__main__":
    asyncio.run(main())
