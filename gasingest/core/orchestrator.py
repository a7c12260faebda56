"""Bulk ingestion orchestrator - coordinates search, scrape, dedupe, save and summary."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from gasingest.config import IngestSettings, SearchConfig, SearchSort
from gasingest.core.client import GitHubClient, MAX_PER_PAGE
from gasingest.core.gate import SummaryGate
from gasingest.core.interfaces import (
    DuplicateChecker,
    SaveCallback,
    SummarySaveCallback,
    SummaryService,
)
from gasingest.core.scraper import LibraryScraper
from gasingest.exceptions import ConfigError
from gasingest.logging import get_logger, run_context
from gasingest.models.repository import RepositoryRef
from gasingest.models.result import BulkScrapeResult, ScrapeResult, TagSearchResult
from gasingest.models.summary import SummaryRequest


# Search + (repo info, README, commits) per candidate
REQUESTS_PER_REPOSITORY = 3


def staleness_cutoff(years: int, now: datetime | None = None) -> datetime:
    """The instant `years` calendar years before now."""
    now = now or datetime.now(timezone.utc)
    try:
        return now.replace(year=now.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return now.replace(year=now.year - years, day=28)


@dataclass
class _Tally:
    results: list[ScrapeResult] = field(default_factory=list)
    total: int = 0
    success_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    stale_count: int = 0

    def succeed(self, result: ScrapeResult) -> None:
        self.results.append(result)
        self.success_count += 1

    def fail(self, error: str) -> None:
        self.results.append(ScrapeResult.failure(error))
        self.error_count += 1


class BulkIngestor:
    """
    Drive ingestion over a page range of GitHub search results.

    Duplicate checking, saving and summary generation are optional steps,
    enabled by injecting the matching callback. Repositories and pages are
    processed strictly sequentially.

    Example:
        ingestor = BulkIngestor(client, config, duplicate_checker=catalog.is_duplicate,
                                save_callback=catalog.save)
        result = await ingestor.run(start_page=1, end_page=3, per_page=10)
    """

    def __init__(
        self,
        client: GitHubClient,
        config: SearchConfig,
        *,
        settings: IngestSettings | None = None,
        scraper: LibraryScraper | None = None,
        duplicate_checker: DuplicateChecker | None = None,
        save_callback: SaveCallback | None = None,
        summary_gate: SummaryGate | None = None,
        summary_service: SummaryService | None = None,
        summary_save_callback: SummarySaveCallback | None = None,
    ):
        self.client = client
        self.config = config
        self.settings = settings or IngestSettings()
        self.scraper = scraper or LibraryScraper(client, config)
        self.duplicate_checker = duplicate_checker
        self.save_callback = save_callback
        self.summary_gate = summary_gate
        self.summary_service = summary_service
        self.summary_save_callback = summary_save_callback
        self._log = get_logger("ingestor")

    def _progress(self, event: str, **kw) -> None:
        if self.config.verbose:
            self._log.info(event, **kw)
        else:
            self._log.debug(event, **kw)

    @staticmethod
    def _validate_range(start_page: int, end_page: int, per_page: int) -> None:
        if start_page < 1:
            raise ConfigError(f"start_page must be >= 1, got {start_page}")
        if end_page < start_page:
            raise ConfigError(f"end_page ({end_page}) must be >= start_page ({start_page})")
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise ConfigError(f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}")

    def _warn_budget(self, start_page: int, end_page: int, per_page: int) -> None:
        pages = end_page - start_page + 1
        estimated = pages * (1 + per_page * REQUESTS_PER_REPOSITORY)
        if estimated > self.config.max_requests_per_hour:
            self._log.warning(
                "request_budget_exceeded",
                estimated_requests=estimated,
                max_requests_per_hour=self.config.max_requests_per_hour,
            )

    async def run(
        self,
        start_page: int = 1,
        end_page: int = 1,
        per_page: int = 10,
        sort: SearchSort | None = None,
        generate_summary: bool = False,
    ) -> BulkScrapeResult:
        """
        Ingest repositories from search pages [start_page, end_page].

        Args:
            start_page: First search page (1-based)
            end_page: Last search page, inclusive
            per_page: Repositories per search page
            sort: Search sort order, SearchSort.UPDATED if None
            generate_summary: Run the summary gate and summary service

        Returns:
            BulkScrapeResult, successful when at least one repository was ingested

        Raises:
            ConfigError: If the page range is malformed, before any request
        """
        self._validate_range(start_page, end_page, per_page)
        with run_context("ingest"):
            return await self._ingest(start_page, end_page, per_page, sort, generate_summary)

    async def _ingest(
        self,
        start_page: int,
        end_page: int,
        per_page: int,
        sort: SearchSort | None,
        generate_summary: bool,
    ) -> BulkScrapeResult:
        self._warn_budget(start_page, end_page, per_page)
        tally = _Tally()
        cutoff = staleness_cutoff(self.settings.staleness_years)

        self._log.info(
            "run_start",
            tags=self.config.tag_list,
            start_page=start_page,
            end_page=end_page,
            per_page=per_page,
            generate_summary=generate_summary,
        )

        for page in range(start_page, end_page + 1):
            self._progress("page_start", page=page)
            try:
                search = await self.client.search_by_page_range(
                    self.config, page, page, per_page, sort
                )
            except Exception as e:
                self._log.exception("page_search_crashed", page=page)
                search = TagSearchResult(success=False, error=str(e) or type(e).__name__)

            if not search.success:
                tally.fail(f"page {page}: {search.error}")
                self._log.error("page_search_failed", page=page, error=search.error)
            elif not search.repositories:
                self._progress("page_empty", page=page)
                break
            else:
                tally.total += search.processed_count
                await self._process_page(search.repositories, cutoff, generate_summary, tally)

            if page < end_page and self.config.page_delay_ms > 0:
                await asyncio.sleep(self.config.page_delay_ms / 1000)

        result = BulkScrapeResult(
            success=tally.success_count > 0,
            results=tally.results,
            total=tally.total,
            success_count=tally.success_count,
            error_count=tally.error_count,
            duplicate_count=tally.duplicate_count,
            stale_count=tally.stale_count,
            max_reported_errors=self.settings.max_reported_errors,
        )
        self._log.info(
            "run_complete",
            total=result.total,
            success_count=result.success_count,
            error_count=result.error_count,
            duplicate_count=result.duplicate_count,
            stale_count=result.stale_count,
            errors=result.errors,
        )
        return result

    async def _process_page(
        self,
        repositories: list[RepositoryRef],
        cutoff: datetime,
        generate_summary: bool,
        tally: _Tally,
    ) -> None:
        for i, repository in enumerate(repositories):
            try:
                await self._process_repository(repository, cutoff, generate_summary, tally)
            except Exception as e:
                self._log.exception("repository_failed", repository=repository.full_name)
                tally.fail(f"{repository.name}: {e}")

            if self.config.request_delay_ms > 0 and i < len(repositories) - 1:
                await asyncio.sleep(self.config.request_delay_ms / 1000)

    async def _process_repository(
        self,
        repository: RepositoryRef,
        cutoff: datetime,
        generate_summary: bool,
        tally: _Tally,
    ) -> None:
        scraped = await self.scraper.scrape(repository.url)
        if not scraped.success:
            self._progress("scrape_failed", repository=repository.full_name, error=scraped.error)
            tally.fail(f"{repository.name}: {scraped.error}")
            return

        data = scraped.data
        if data.last_commit_at < cutoff:
            tally.stale_count += 1
            self._progress(
                "repository_skipped_stale",
                repository=repository.full_name,
                last_commit_at=data.last_commit_at.isoformat(),
            )
            return

        if self.duplicate_checker and await self.duplicate_checker(data.script_id):
            tally.duplicate_count += 1
            self._progress("duplicate_skipped", repository=repository.full_name, script_id=data.script_id)
            return

        should_summarize = await self._summary_decision(data.repository_url, data.last_commit_at,
                                                        generate_summary)

        if self.save_callback is None:
            tally.succeed(scraped)
            return

        saved = await self.save_callback(data, should_summarize)
        if not saved.success:
            self._log.error("save_failed", repository=repository.full_name, error=saved.error)
            tally.fail(f"{repository.name}: {saved.error or 'save failed'}")
            return

        tally.succeed(scraped)
        self._progress("repository_saved", repository=repository.full_name, catalog_id=saved.id,
                       script_type=data.script_type.value)

        if should_summarize and saved.id:
            await self._generate_summary(saved.id, data.repository_url)

    async def _summary_decision(
        self, repository_url: str, last_commit_at: datetime, generate_summary: bool
    ) -> bool:
        if not generate_summary:
            return False
        if self.summary_gate is None:
            return True
        try:
            return await self.summary_gate.should_generate_summary(repository_url, last_commit_at)
        except Exception as e:
            # Gate unavailable: no summary this run
            self._log.warning("summary_gate_failed", repository_url=repository_url, error=str(e))
            return False

    async def _generate_summary(self, catalog_id: str, repository_url: str) -> None:
        if self.summary_service is None or self.summary_save_callback is None:
            return
        try:
            summary = await self.summary_service(SummaryRequest(source_url=repository_url))
            await self.summary_save_callback(catalog_id, summary)
        except Exception as e:
            self._log.warning("summary_failed", catalog_id=catalog_id, error=str(e))
            return
        self._progress("summary_generated", catalog_id=catalog_id)
