"""
Tests for refresh admission, the workflow trigger and the poll scheduler.

Run: pytest backend/tests/test_refresh.py -v
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from shared.errors import FetchExhausted, RefreshBusy, WorkflowDispatchError
from shared.models.domain import ReconcileResult

from reconciler.refresh import RefreshGate, RefreshService
from reconciler.workflow import WorkflowTrigger
from scheduler.service import PollScheduler

from conftest import NOW, fixed_clock, make_settings


def _engine(result: ReconcileResult | None = None, error: Exception | None = None) -> MagicMock:
    engine = MagicMock()
    if error is not None:
        engine.reconcile = AsyncMock(side_effect=error)
    else:
        engine.reconcile = AsyncMock(
            return_value=result or ReconcileResult(updated=False, processed_at=NOW)
        )
    return engine


# ── Gate ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_gate_rejects_while_held() -> None:
    gate = RefreshGate()
    async with gate.admit():
        assert gate.busy
        with pytest.raises(RefreshBusy):
            async with gate.admit():
                pass
    assert not gate.busy


@pytest.mark.asyncio
async def test_gate_released_after_failure() -> None:
    gate = RefreshGate()
    with pytest.raises(ValueError):
        async with gate.admit():
            raise ValueError("boom")
    assert not gate.busy


# ── RefreshService ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_refresh_result_shape() -> None:
    workflow = MagicMock()
    workflow.trigger = AsyncMock(return_value={"skipped": True, "reason": "no token"})
    service = RefreshService(_engine(), RefreshGate(), workflow, clock=fixed_clock())

    result = await service.refresh()

    assert result["ok"] is True
    assert result["startedAt"] == NOW.isoformat()
    assert result["dispatch"] == {"skipped": True, "reason": "no token"}
    assert result["sync"]["updated"] is False
    assert "processedAt" in result["sync"]


@pytest.mark.asyncio
async def test_concurrent_refresh_is_rejected() -> None:
    release = asyncio.Event()

    async def slow_reconcile() -> ReconcileResult:
        await release.wait()
        return ReconcileResult(updated=True, processed_at=NOW)

    engine = MagicMock()
    engine.reconcile = AsyncMock(side_effect=slow_reconcile)
    service = RefreshService(engine, RefreshGate())

    first = asyncio.create_task(service.refresh())
    await asyncio.sleep(0)
    with pytest.raises(RefreshBusy):
        await service.refresh()

    release.set()
    assert (await first)["sync"]["updated"] is True
    assert not service.gate.busy


@pytest.mark.asyncio
async def test_refresh_failure_releases_gate() -> None:
    service = RefreshService(
        _engine(error=FetchExhausted("https://x.test", 3, None)), RefreshGate()
    )
    with pytest.raises(FetchExhausted):
        await service.refresh()
    assert not service.gate.busy


@pytest.mark.asyncio
async def test_reconcile_if_idle_skips_when_busy() -> None:
    engine = _engine()
    service = RefreshService(engine, RefreshGate())
    async with service.gate.admit():
        assert await service.reconcile_if_idle() is None
    engine.reconcile.assert_not_awaited()
    assert await service.reconcile_if_idle() is not None


# ── WorkflowTrigger ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_workflow_skipped_without_token(tmp_path: Path) -> None:
    trigger = WorkflowTrigger(make_settings(tmp_path))
    assert await trigger.trigger() == {"skipped": True, "reason": "no token"}


@pytest.mark.asyncio
async def test_workflow_dispatch_request(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    settings = make_settings(tmp_path, github_token="t0ken", github_ref="main")
    trigger = WorkflowTrigger(settings, transport=httpx.MockTransport(handler))

    result = await trigger.trigger()

    assert result == {"skipped": False, "workflow": "forms-scrape.yml", "ref": "main"}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/repos/zzqsld/BG4JXV-QSL-MANGER/actions/workflows/forms-scrape.yml/dispatches"
    assert request.headers["Authorization"] == "Bearer t0ken"
    assert json.loads(request.content) == {"ref": "main"}


@pytest.mark.asyncio
async def test_workflow_dispatch_error_status(tmp_path: Path) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(422, text="bad ref"))
    trigger = WorkflowTrigger(make_settings(tmp_path, github_token="t"), transport=transport)
    with pytest.raises(WorkflowDispatchError) as info:
        await trigger.trigger()
    assert "422" in str(info.value)


# ── PollScheduler ───────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_scheduler_tick_survives_errors(tmp_path: Path) -> None:
    refresh = MagicMock()
    refresh.reconcile_if_idle = AsyncMock(side_effect=RuntimeError("store down"))
    scheduler = PollScheduler(refresh, make_settings(tmp_path))

    await scheduler.tick()

    assert scheduler.ticks == 1


@pytest.mark.asyncio
async def test_scheduler_runs_until_shutdown(tmp_path: Path) -> None:
    refresh = MagicMock()
    refresh.reconcile_if_idle = AsyncMock(return_value=ReconcileResult(updated=False, processed_at=NOW))
    scheduler = PollScheduler(refresh, make_settings(tmp_path, poll_interval_s=0.01))

    task = asyncio.create_task(scheduler.run())
    while scheduler.ticks < 2:
        await asyncio.sleep(0.01)
    scheduler.request_shutdown()
    await asyncio.wait_for(task, timeout=1.0)

    assert refresh.reconcile_if_idle.await_count >= 2
