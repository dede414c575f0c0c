"""
Unit tests for the retrying source fetcher.

Run: pytest backend/tests/test_http_client.py -v
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from shared.errors import FetchExhausted
from shared.utils.http_client import SourceFetcher

from conftest import make_settings


def _flaky_transport(failures: int, body: bytes = b'{"ok": true}') -> tuple[httpx.MockTransport, list[int]]:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) <= failures:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler), calls


@pytest.mark.asyncio
async def test_fetch_fails_twice_then_succeeds(tmp_path: Path) -> None:
    transport, calls = _flaky_transport(failures=2)
    sleep = AsyncMock()
    fetcher = SourceFetcher(make_settings(tmp_path), transport=transport, sleep=sleep)

    with patch("shared.utils.http_client.logger", MagicMock()) as log:
        async with fetcher:
            body = await fetcher.fetch("https://example.test/entries.json")

    assert body == b'{"ok": true}'
    assert len(calls) == 3
    assert log.warning.call_count == 2
    assert log.warning.call_args_list[0].args[0] == "fetch_retry_failed"


@pytest.mark.asyncio
async def test_fetch_backoff_is_linear(tmp_path: Path) -> None:
    transport, _ = _flaky_transport(failures=2)
    sleep = AsyncMock()
    fetcher = SourceFetcher(
        make_settings(tmp_path), backoff_step_s=0.5, transport=transport, sleep=sleep
    )

    async with fetcher:
        await fetcher.fetch("https://example.test/x")

    assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]


@pytest.mark.asyncio
async def test_fetch_exhausted_after_all_attempts(tmp_path: Path) -> None:
    transport, calls = _flaky_transport(failures=10)
    sleep = AsyncMock()
    fetcher = SourceFetcher(make_settings(tmp_path), transport=transport, sleep=sleep)

    async with fetcher:
        with pytest.raises(FetchExhausted) as info:
            await fetcher.fetch("https://example.test/x")

    assert len(calls) == 3
    assert info.value.attempts == 3
    assert isinstance(info.value.last_error, httpx.HTTPStatusError)
    # no pause after the final attempt
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_fetch_transport_error_is_retried(tmp_path: Path) -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, content=b"ok")

    fetcher = SourceFetcher(
        make_settings(tmp_path), transport=httpx.MockTransport(handler), sleep=AsyncMock()
    )
    async with fetcher:
        assert await fetcher.fetch("https://example.test/x") == b"ok"
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_fetch_malformed_url_is_exhausted(tmp_path: Path) -> None:
    transport, calls = _flaky_transport(failures=0)
    sleep = AsyncMock()
    fetcher = SourceFetcher(make_settings(tmp_path), transport=transport, sleep=sleep)

    async with fetcher:
        with pytest.raises(FetchExhausted) as info:
            await fetcher.fetch("https://example.test:notaport/x")

    assert calls == []
    assert info.value.attempts == 3
    assert isinstance(info.value.last_error, httpx.InvalidURL)
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_fetch_requires_start(tmp_path: Path) -> None:
    fetcher = SourceFetcher(make_settings(tmp_path))
    with pytest.raises(RuntimeError):
        await fetcher.fetch("https://example.test/x")
