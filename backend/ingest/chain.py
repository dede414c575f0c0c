"""
Acquisition chain: picks the entry source by a fixed priority policy.

Priority (first matching branch wins):
1. configured structured release document;
2. the fixed release-tag asset, falling through only when it yields nothing;
3. configured heuristic analysis page;
4. the local mock file.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Sequence

from shared.config import Settings, get_settings
from shared.models.domain import AcquisitionResult, utcnow
from shared.utils.http_client import SourceFetcher
from shared.utils.logging import get_logger
from shared.utils.metrics import ENTRIES_ACQUIRED

from ingest.sources import (
    AnalysisPageSource,
    EntrySource,
    MockFileSource,
    QuestionLabels,
    ReleaseJsonSource,
    ReleaseTagSource,
)

logger = get_logger(__name__)


class AcquisitionChain:
    """Ordered entry sources; tries them by priority until one answers."""

    def __init__(self, sources: Sequence[EntrySource]) -> None:
        if not sources:
            raise ValueError("AcquisitionChain needs at least one source")
        self._sources = list(sources)

    @classmethod
    def from_settings(
        cls,
        fetcher: SourceFetcher,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "AcquisitionChain":
        settings = settings or get_settings()
        if settings.release_json_url:
            # A configured structured document is authoritative on its own.
            return cls([ReleaseJsonSource(settings.release_json_url, fetcher, settings.data_dir)])

        sources: list[EntrySource] = []
        if settings.release_tag_enabled:
            sources.append(
                ReleaseTagSource(
                    fetcher,
                    owner=settings.release_owner,
                    repo=settings.release_repo,
                    tag=settings.release_tag,
                    asset_name=settings.release_asset_name,
                    api_base=settings.github_api_base,
                )
            )
        if settings.analysis_page_url:
            sources.append(
                AnalysisPageSource(
                    settings.analysis_page_url,
                    fetcher,
                    QuestionLabels(
                        callsign=settings.callsign_question,
                        code=settings.code_question,
                        card_type=settings.card_type_question,
                    ),
                    limit=settings.heuristic_answer_limit,
                    clock=clock,
                )
            )
        else:
            sources.append(MockFileSource(settings.mock_entries_path))
        return cls(sources)

    @property
    def sources(self) -> list[EntrySource]:
        return list(self._sources)

    @property
    def cursor_bypassed(self) -> bool:
        """True when a configured source cannot supply absolute submission times."""
        return any(not source.kind.trusts_timestamps for source in self._sources)

    async def acquire(self) -> AcquisitionResult:
        """Produce the current best-effort list of raw form entries."""
        result = AcquisitionResult(source=self._sources[-1].kind)
        for source in self._sources:
            entries = await source.fetch_entries()
            if entries or not source.falls_through_when_empty:
                result = AcquisitionResult(source=source.kind, entries=entries)
                break
            logger.info("source_empty_fallthrough", source=source.kind.value)

        ENTRIES_ACQUIRED.labels(source=result.source.value).inc(len(result.entries))
        logger.info("entries_acquired", source=result.source.value, count=len(result.entries))
        return result
