"""Refresh job: re-scrape existing catalog entries in bounded batches."""

import asyncio
from enum import Enum

from gasingest.catalog.base import CatalogEntry, CatalogStore
from gasingest.core.gate import SummaryGate
from gasingest.core.interfaces import SummaryService
from gasingest.core.scraper import LibraryScraper
from gasingest.exceptions import ConfigError
from gasingest.logging import get_logger, run_context
from gasingest.models.result import RefreshResult
from gasingest.models.summary import SummaryRequest


class Outcome(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class CatalogRefresher:
    """
    Update metadata of stored entries from GitHub.

    Each batch is scraped concurrently, then the job waits delay_ms before
    the next batch.
    """

    def __init__(
        self,
        scraper: LibraryScraper,
        catalog: CatalogStore,
        summary_service: SummaryService | None = None,
        max_reported_errors: int = 10,
    ):
        self.scraper = scraper
        self.catalog = catalog
        self.summary_service = summary_service
        self.gate = SummaryGate(catalog)
        self.max_reported_errors = max_reported_errors
        self._log = get_logger("refresher")

    async def run(
        self,
        batch_size: int = 10,
        delay_ms: int = 500,
        exclude_rejected: bool = True,
        generate_summary: bool = False,
    ) -> RefreshResult:
        """
        Refresh all catalog entries.

        Raises:
            ConfigError: If batch_size is not positive
        """
        if batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1, got {batch_size}")

        with run_context("refresh"):
            return await self._refresh_all(batch_size, delay_ms, exclude_rejected, generate_summary)

    async def _refresh_all(
        self, batch_size: int, delay_ms: int, exclude_rejected: bool, generate_summary: bool
    ) -> RefreshResult:
        entries = await self.catalog.list_entries(exclude_rejected=exclude_rejected)
        self._log.info("refresh_start", entries=len(entries), batch_size=batch_size)

        outcomes: list[tuple[Outcome, str | None, bool]] = []
        for start in range(0, len(entries), batch_size):
            batch = entries[start:start + batch_size]
            outcomes.extend(
                await asyncio.gather(*(self._refresh_entry(e, generate_summary) for e in batch))
            )
            if start + batch_size < len(entries) and delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)

        counts = {outcome: 0 for outcome in Outcome}
        for outcome, _, _ in outcomes:
            counts[outcome] += 1
        result = RefreshResult(
            success=counts[Outcome.FAILED] == 0 or counts[Outcome.UPDATED] > 0,
            total=len(entries),
            success_count=counts[Outcome.UPDATED],
            error_count=counts[Outcome.FAILED],
            skipped_count=counts[Outcome.SKIPPED],
            summary_count=sum(1 for _, _, summarized in outcomes if summarized),
            error_messages=[error for _, error, _ in outcomes if error],
            max_reported_errors=self.max_reported_errors,
        )
        self._log.info(
            "refresh_complete",
            total=result.total,
            success_count=result.success_count,
            error_count=result.error_count,
            skipped_count=result.skipped_count,
            summary_count=result.summary_count,
            errors=result.errors,
        )
        return result

    async def _refresh_entry(
        self, entry: CatalogEntry, generate_summary: bool
    ) -> tuple[Outcome, str | None, bool]:
        """Refresh one entry, returning (outcome, error, summarized)."""
        try:
            return await self._refresh_metadata(entry, generate_summary)
        except Exception as e:
            self._log.exception("refresh_entry_failed", catalog_id=entry.id)
            return Outcome.FAILED, f"{entry.name}: {str(e) or type(e).__name__}", False

    async def _refresh_metadata(
        self, entry: CatalogEntry, generate_summary: bool
    ) -> tuple[Outcome, str | None, bool]:
        scraped = await self.scraper.scrape(entry.repository_url)
        if not scraped.success:
            return Outcome.FAILED, f"{entry.name}: {scraped.error}", False
        data = scraped.data

        unchanged = (
            entry.last_commit_at == data.last_commit_at
            and entry.star_count == data.star_count
            and entry.script_id == data.script_id
        )
        summarize = (
            generate_summary
            and self.summary_service is not None
            and await self.gate.should_generate_summary(entry.repository_url, data.last_commit_at)
        )
        if unchanged and not summarize:
            return Outcome.SKIPPED, None, False
        if not unchanged:
            await self.catalog.update_entry(entry.id, data)

        if not summarize:
            return Outcome.UPDATED, None, False
        try:
            summary = await self.summary_service(SummaryRequest(source_url=entry.repository_url))
            await self.catalog.save_summary(entry.id, summary)
        except Exception as e:
            self._log.warning("summary_failed", catalog_id=entry.id, error=str(e))
            return Outcome.UPDATED, None, False
        return Outcome.UPDATED, None, True
