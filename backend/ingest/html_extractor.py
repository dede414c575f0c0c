"""
Best-effort extraction of the latest answers to one question from a form
analysis page.

The page is not parsed as HTML: answers are picked out of the raw text near
the question label, in three passes that each run only when the earlier ones
found fewer than ``limit`` answers:

1. quoted literals in the 1600 characters following the label;
2. quoted literals in the block between the label and the "latest reply"
   marker (marker within 1000 characters, block extends 600 past it);
3. bare upper-case alphanumeric tokens from 200 characters before to 1200
   characters after the label.

A short or empty result is normal (the layout changed, or the question has
few replies) and is not an error.
"""
from __future__ import annotations

import re

from shared.utils.logging import get_logger

logger = get_logger(__name__)

LATEST_REPLY_MARKER = "最新回复"

PRIMARY_WINDOW = 1600
MARKER_SEARCH_WINDOW = 1000
MARKER_TAIL_WINDOW = 600
TOKEN_WINDOW_BEFORE = 200
TOKEN_WINDOW_AFTER = 1200

QUOTED_RE = re.compile(r"[\"“”']([^\"”'<]{1,80})[\"“”']")
QUOTE_CHARS_RE = re.compile(r"[\"“”']")
BARE_TOKEN_RE = re.compile(r"[A-Z0-9]{2,16}")


def _quoted_literals(block: str) -> list[str]:
    values = []
    for match in QUOTED_RE.finditer(block):
        value = QUOTE_CHARS_RE.sub("", match.group(0)).strip()
        if value:
            values.append(value)
    return values


def _collect(answers: list[str], candidates: list[str], limit: int, *, unique: bool) -> None:
    for value in candidates:
        if len(answers) >= limit:
            return
        if unique and value in answers:
            continue
        answers.append(value)


def extract_latest_answers(html: str, question: str, limit: int = 3) -> list[str]:
    """Return up to ``limit`` answers for ``question``, most recent first."""
    if limit <= 0 or not question:
        return []
    idx = html.find(question)
    if idx == -1:
        logger.debug("heuristic_label_missing", question=question)
        return []

    answers: list[str] = []
    _collect(answers, _quoted_literals(html[idx:idx + PRIMARY_WINDOW]), limit, unique=False)

    if len(answers) < limit:
        block_re = re.compile(
            re.escape(question)
            + r"[\s\S]{0,%d}?" % MARKER_SEARCH_WINDOW
            + re.escape(LATEST_REPLY_MARKER)
            + r"[\s\S]{0,%d}" % MARKER_TAIL_WINDOW,
            re.IGNORECASE,
        )
        block = block_re.search(html)
        if block:
            _collect(answers, _quoted_literals(block.group(0)), limit, unique=True)

    if len(answers) < limit:
        window = html[max(0, idx - TOKEN_WINDOW_BEFORE):idx + TOKEN_WINDOW_AFTER]
        _collect(answers, BARE_TOKEN_RE.findall(window), limit, unique=True)

    if len(answers) < limit:
        logger.debug("heuristic_miss", question=question, found=len(answers), limit=limit)
    return answers[:limit]
