"""
GitHub Actions trigger for the form-scraping workflow.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from shared.config import Settings, get_settings
from shared.errors import WorkflowDispatchError
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class WorkflowTrigger:
    """Sends a ``workflow_dispatch`` event so the scraper republishes the entry asset."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def dispatch_url(self) -> str:
        s = self._settings
        return (
            f"{s.github_api_base.rstrip('/')}/repos/{s.github_owner}/{s.github_repo}"
            f"/actions/workflows/{s.github_workflow}/dispatches"
        )

    async def trigger(self) -> dict[str, Any]:
        """
        Request a workflow run on the configured ref.

        Returns a summary dict; ``skipped`` is True when no token is configured.

        Raises:
            WorkflowDispatchError: GitHub answered with a non-2xx status or the
                request could not be sent.
        """
        s = self._settings
        if not s.github_token:
            logger.info("workflow_dispatch_skipped", reason="no token")
            return {"skipped": True, "reason": "no token"}

        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "qsl-refresh",
            "Authorization": f"Bearer {s.github_token}",
        }
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(s.fetch_timeout_s, connect=5.0),
            verify=not s.insecure_tls,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.post(
                    self.dispatch_url, json={"ref": s.github_ref}, headers=headers
                )
            except httpx.HTTPError as exc:
                raise WorkflowDispatchError(f"workflow dispatch failed: {exc}") from exc

        if not resp.is_success:
            raise WorkflowDispatchError(
                f"workflow dispatch failed {resp.status_code} {resp.text[:160]}"
            )

        logger.info("workflow_dispatched", workflow=s.github_workflow, ref=s.github_ref)
        return {"skipped": False, "workflow": s.github_workflow, "ref": s.github_ref}
