"""
Fallback release source: a named asset attached to a fixed GitHub release tag.
Every failure is logged and reported as "no entries".
"""
from __future__ import annotations

import json

from shared.models.domain import FormEntry
from shared.models.enums import SourceKind
from shared.utils.http_client import ACCEPT_JSON, SourceFetcher
from shared.utils.logging import get_logger

from ingest.documents import decode_entry_document, to_form_entries
from ingest.sources.base import EntrySource

logger = get_logger(__name__)

GITHUB_JSON = {"Accept": "application/vnd.github+json"}


class ReleaseTagSource(EntrySource):
    """Downloads the entry asset published on ``owner/repo@tag``."""

    falls_through_when_empty = True

    def __init__(
        self,
        fetcher: SourceFetcher,
        owner: str,
        repo: str,
        tag: str,
        asset_name: str,
        api_base: str = "https://api.github.com",
    ) -> None:
        self._fetcher = fetcher
        self._asset_name = asset_name
        self._meta_url = f"{api_base.rstrip('/')}/repos/{owner}/{repo}/releases/tags/{tag}"

    @property
    def kind(self) -> SourceKind:
        return SourceKind.RELEASE_TAG

    @property
    def metadata_url(self) -> str:
        return self._meta_url

    async def _asset_url(self) -> str | None:
        meta = json.loads(await self._fetcher.fetch(self._meta_url, headers=GITHUB_JSON))
        assets = meta.get("assets") if isinstance(meta, dict) else None
        if not isinstance(assets, list):
            return None
        for asset in assets:
            if isinstance(asset, dict) and asset.get("name") == self._asset_name:
                return asset.get("browser_download_url") or None
        return None

    async def fetch_entries(self) -> list[FormEntry]:
        try:
            url = await self._asset_url()
            if not url:
                logger.info("release_tag_asset_missing", url=self._meta_url, asset=self._asset_name)
                return []
            items = decode_entry_document(await self._fetcher.fetch(url, headers=ACCEPT_JSON))
            entries = to_form_entries(items)
        except Exception as exc:
            logger.error("release_tag_fetch_failed", url=self._meta_url, error=str(exc))
            return []
        logger.info("release_tag_entries", count=len(entries))
        return entries
