"""Result wrapper models for scrape, search and bulk runs."""

from pydantic import BaseModel, model_validator

from gasingest.models.library import ScrapedLibraryData
from gasingest.models.repository import RepositoryRef


DEFAULT_REPORTED_ERRORS = 10


class ScrapeResult(BaseModel):
    """Outcome of scraping one repository: either data or an error."""

    success: bool
    data: ScrapedLibraryData | None = None
    error: str | None = None

    @model_validator(mode="after")
    def check_tagged(self) -> "ScrapeResult":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful result requires data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("failed result requires an error and no data")
        return self

    @classmethod
    def ok(cls, data: ScrapedLibraryData) -> "ScrapeResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ScrapeResult":
        return cls(success=False, error=error)


class TagSearchResult(BaseModel):
    """Outcome of a repository search."""

    success: bool
    repositories: list[RepositoryRef] = []
    total_found: int = 0
    processed_count: int = 0
    error: str | None = None


class SaveResult(BaseModel):
    """Outcome reported by a save callback."""

    success: bool
    id: str | None = None
    error: str | None = None


class CommitStatus(BaseModel):
    """Stored-vs-scraped commit comparison for one repository."""

    is_new: bool
    should_update: bool
    existing_catalog_id: str | None = None


def _first_errors(results: list[ScrapeResult], limit: int) -> list[str]:
    return [r.error for r in results if not r.success and r.error][:limit]


class BulkScrapeResult(BaseModel):
    """Aggregate over an orchestrated ingestion run."""

    success: bool
    results: list[ScrapeResult] = []
    total: int = 0
    success_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    stale_count: int = 0
    max_reported_errors: int = DEFAULT_REPORTED_ERRORS

    @model_validator(mode="after")
    def check_counts(self) -> "BulkScrapeResult":
        if self.success_count + self.error_count != len(self.results):
            raise ValueError("success_count + error_count must equal len(results)")
        return self

    @property
    def errors(self) -> list[str]:
        """First max_reported_errors error messages."""
        return _first_errors(self.results, self.max_reported_errors)


class RefreshResult(BaseModel):
    """Aggregate over a catalog refresh run."""

    success: bool
    total: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    summary_count: int = 0
    error_messages: list[str] = []
    max_reported_errors: int = DEFAULT_REPORTED_ERRORS

    @property
    def errors(self) -> list[str]:
        """First max_reported_errors error messages."""
        return self.error_messages[: self.max_reported_errors]
