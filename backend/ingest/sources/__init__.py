from ingest.sources.analysis_page import AnalysisPageSource, QuestionLabels
from ingest.sources.base import EntrySource
from ingest.sources.mock_file import MockFileSource
from ingest.sources.release import ReleaseJsonSource
from ingest.sources.release_tag import ReleaseTagSource

__all__ = [
    "AnalysisPageSource",
    "EntrySource",
    "MockFileSource",
    "QuestionLabels",
    "ReleaseJsonSource",
    "ReleaseTagSource",
]
