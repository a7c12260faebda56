"""Capability interfaces injected into the ingestion pipeline.

The core never talks to a catalog store directly. Anything satisfying these
protocols (a bound method of a store, a plain async function, an AsyncMock)
can be wired in.
"""

from datetime import datetime
from typing import Protocol

from gasingest.models.library import ScrapedLibraryData
from gasingest.models.result import SaveResult
from gasingest.models.summary import SummaryRecord, SummaryRequest


class DuplicateChecker(Protocol):
    async def __call__(self, script_id: str) -> bool: ...


class SaveCallback(Protocol):
    async def __call__(
        self, data: ScrapedLibraryData, generate_summary: bool = False
    ) -> SaveResult: ...


class SummaryService(Protocol):
    async def __call__(self, request: SummaryRequest) -> SummaryRecord: ...


class SummarySaveCallback(Protocol):
    async def __call__(self, catalog_id: str, summary: SummaryRecord) -> None: ...


class StoredCommit(Protocol):
    """What the summary gate needs to know about a stored catalog entry."""

    id: str
    last_commit_at: datetime | None


class CatalogLookup(Protocol):
    """Read access used by the summary gate."""

    async def find_by_repository_url(self, repository_url: str) -> StoredCommit | None: ...

    async def summary_exists(self, catalog_id: str) -> bool: ...
