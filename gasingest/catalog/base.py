"""Abstract catalog store interface."""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel

from gasingest.core.classifier import ScriptType
from gasingest.models.library import LibraryStatus, ScrapedLibraryData
from gasingest.models.result import SaveResult
from gasingest.models.summary import SummaryRecord


class CatalogEntry(BaseModel):
    """A stored library or web app."""

    id: str
    script_id: str
    script_type: ScriptType
    name: str
    repository_url: str
    author_name: str = ""
    author_url: str = ""
    description: str = ""
    license_type: str | None = None
    license_url: str | None = None
    star_count: int = 0
    last_commit_at: datetime | None = None
    status: LibraryStatus = LibraryStatus.PENDING
    summary_pending: bool = False
    created_at: datetime
    updated_at: datetime


class CatalogStore(ABC):
    """
    Abstract base class for catalog stores.

    Bound methods plug straight into the ingestion pipeline:
    is_duplicate as DuplicateChecker, save as SaveCallback and
    save_summary as SummarySaveCallback.
    """

    @abstractmethod
    async def is_duplicate(self, script_id: str) -> bool:
        """Check whether an entry with this script ID is already stored."""
        ...

    @abstractmethod
    async def save(self, data: ScrapedLibraryData, generate_summary: bool = False) -> SaveResult:
        """
        Insert data, or update the entry with the same repository URL.

        Args:
            data: Scraped record
            generate_summary: Mark the entry as awaiting a summary

        Returns:
            SaveResult carrying the entry ID on success
        """
        ...

    @abstractmethod
    async def update_entry(self, catalog_id: str, data: ScrapedLibraryData) -> None:
        """Overwrite scraped metadata of an existing entry, keeping its status."""
        ...

    @abstractmethod
    async def get(self, catalog_id: str) -> CatalogEntry | None:
        ...

    @abstractmethod
    async def find_by_repository_url(self, repository_url: str) -> CatalogEntry | None:
        ...

    @abstractmethod
    async def list_entries(self, exclude_rejected: bool = True) -> list[CatalogEntry]:
        """All entries, oldest first."""
        ...

    @abstractmethod
    async def set_status(self, catalog_id: str, status: LibraryStatus) -> None:
        ...

    @abstractmethod
    async def summary_exists(self, catalog_id: str) -> bool:
        ...

    @abstractmethod
    async def get_summary(self, catalog_id: str) -> SummaryRecord | None:
        ...

    @abstractmethod
    async def save_summary(self, catalog_id: str, summary: SummaryRecord) -> None:
        """Store or replace the summary of an entry and clear its pending flag."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Cleanup connections and resources."""
        ...

    async def __aenter__(self) -> "CatalogStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
