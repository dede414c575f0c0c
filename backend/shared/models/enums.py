"""Domain enumerations for the QSL tracker."""
from __future__ import annotations

from enum import Enum


class DispatchStatus(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class WarningKind(str, Enum):
    CODE_MISMATCH = "code-mismatch"


class SourceKind(str, Enum):
    """Entry sources in acquisition priority order."""
    RELEASE = "release"
    RELEASE_TAG = "release_tag"
    ANALYSIS_PAGE = "analysis_page"
    MOCK = "mock"

    @property
    def trusts_timestamps(self) -> bool:
        """Whether submission times from this source are real absolute instants."""
        return self not in (SourceKind.RELEASE, SourceKind.ANALYSIS_PAGE)


class ResolveAction(str, Enum):
    IGNORE = "ignore"
    CONFIRM = "confirm"
