"""Pydantic models for gasingest."""

from gasingest.models.repository import RepositoryRef
from gasingest.models.library import LibraryStatus, ScrapedLibraryData
from gasingest.models.result import (
    BulkScrapeResult,
    CommitStatus,
    RefreshResult,
    SaveResult,
    ScrapeResult,
    TagSearchResult,
)
from gasingest.models.summary import SummaryRecord, SummaryRequest

__all__ = [
    "RepositoryRef",
    "LibraryStatus",
    "ScrapedLibraryData",
    "BulkScrapeResult",
    "CommitStatus",
    "RefreshResult",
    "SaveResult",
    "ScrapeResult",
    "TagSearchResult",
    "SummaryRecord",
    "SummaryRequest",
]
