"""
Heuristic analysis page source.

Scrapes the latest answers to the call-sign, code and card-type questions from
the form's public analysis page and pairs them by position. The page carries
no submission times, so entries get synthetic ones that only preserve the
newest-first order within a single fetch.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Callable, NamedTuple

from shared.models.domain import FormEntry, utcnow
from shared.models.enums import SourceKind
from shared.utils.http_client import ACCEPT_HTML, SourceFetcher
from shared.utils.logging import get_logger

from ingest.html_extractor import extract_latest_answers
from ingest.sources.base import EntrySource

logger = get_logger(__name__)

CALLSIGN_RE = re.compile(r"^[A-Z0-9]{2,10}$", re.IGNORECASE)
CODE_RE = re.compile(r"^[0-9]{3,10}$")


class QuestionLabels(NamedTuple):
    callsign: str
    code: str
    card_type: str


def pair_answers(
    calls: list[str],
    codes: list[str],
    names: list[str],
    now: datetime,
) -> list[FormEntry]:
    """Zip answer columns positionally, newest first, one second apart."""
    pair_len = min(len(calls), len(codes))
    size = pair_len if pair_len > 0 else max(len(calls), len(codes), len(names))
    entries = []
    for i in range(size):
        entries.append(
            FormEntry(
                name=names[i] if i < len(names) else None,
                callsign=calls[i] if i < len(calls) else "",
                password=codes[i] if i < len(codes) else None,
                submitted_at=now - timedelta(seconds=i),
            )
        )
    return entries


def is_plausible(entry: FormEntry) -> bool:
    return bool(
        CALLSIGN_RE.match(entry.callsign.strip())
        and entry.password
        and CODE_RE.match(entry.password)
    )


class AnalysisPageSource(EntrySource):
    """Builds entries from the three question columns of the analysis page."""

    def __init__(
        self,
        url: str,
        fetcher: SourceFetcher,
        labels: QuestionLabels,
        limit: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._url = url
        self._fetcher = fetcher
        self._labels = labels
        self._limit = limit
        self._clock = clock

    @property
    def kind(self) -> SourceKind:
        return SourceKind.ANALYSIS_PAGE

    async def fetch_entries(self) -> list[FormEntry]:
        raw = await self._fetcher.fetch(self._url, headers=ACCEPT_HTML)
        html = raw.decode("utf-8", errors="replace")

        calls = extract_latest_answers(html, self._labels.callsign, self._limit)
        codes = extract_latest_answers(html, self._labels.code, self._limit)
        names = extract_latest_answers(html, self._labels.card_type, self._limit)

        entries = pair_answers(calls, codes, names, self._clock())
        filtered = [e for e in entries if is_plausible(e)]
        logger.info(
            "analysis_entries",
            url=self._url,
            extracted=[e.to_wire() for e in entries],
            kept=len(filtered),
        )
        return filtered
