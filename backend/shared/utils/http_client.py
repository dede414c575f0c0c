"""
Async HTTP fetcher shared by every entry source.
Bounded retries with linear backoff; each failed attempt is logged and counted.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from shared.config import Settings, get_settings
from shared.errors import FetchExhausted
from shared.utils.logging import get_logger
from shared.utils.metrics import FETCH_ATTEMPTS

logger = get_logger(__name__)

ACCEPT_JSON = {"Accept": "application/json,text/plain"}
ACCEPT_HTML = {"Accept": "text/html"}


class SourceFetcher:
    """
    Fetches raw bytes over HTTP.

    Attempt ``n`` that fails (transport error or non-2xx status) is followed by a
    pause of ``n * backoff_step_s`` before the next one. When every attempt has
    failed, ``FetchExhausted`` carries the last failure.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        max_attempts: int | None = None,
        backoff_step_s: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        settings = settings or get_settings()
        self._max_attempts = max_attempts or settings.fetch_max_attempts
        self._backoff_step_s = (
            settings.fetch_backoff_step_s if backoff_step_s is None else backoff_step_s
        )
        self._timeout = settings.fetch_timeout_s
        self._user_agent = settings.user_agent
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._user_agent},
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SourceFetcher":
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def fetch(
        self,
        url: str,
        attempts: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        """
        GET ``url`` and return the response body.

        Args:
            url: Absolute URL.
            attempts: Attempt budget; defaults to the configured ``fetch_max_attempts``.
            headers: Request-specific headers.

        Raises:
            FetchExhausted: If no attempt succeeded.
        """
        if not self._client:
            raise RuntimeError("SourceFetcher not started. Call start() first.")

        attempts = attempts or self._max_attempts
        last_exc: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                resp = await self._client.get(url, headers=headers)
                if not resp.is_success:
                    raise httpx.HTTPStatusError(
                        f"HTTP {resp.status_code} {resp.text[:200]}",
                        request=resp.request,
                        response=resp,
                    )
                FETCH_ATTEMPTS.labels(outcome="success").inc()
                logger.debug("fetch_success", url=url, attempt=attempt, bytes=len(resp.content))
                return resp.content
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                last_exc = exc
                FETCH_ATTEMPTS.labels(outcome="error").inc()
                logger.warning(
                    "fetch_retry_failed",
                    url=url,
                    attempt=attempt,
                    attempts=attempts,
                    error=str(exc),
                )
                if attempt < attempts:
                    await self._sleep(self._backoff_step_s * attempt)

        raise FetchExhausted(url, attempts, last_exc)
