"""Summary gate: decide whether an AI summary must be (re)generated."""

from datetime import datetime, timezone

from gasingest.core.interfaces import CatalogLookup
from gasingest.logging import get_logger
from gasingest.models.result import CommitStatus


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SummaryGate:
    """
    Cost control for the external summary service.

    A summary is generated for new entries, entries whose last commit
    changed since they were stored, and existing entries with no summary.
    """

    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog
        self._log = get_logger("gate")

    async def commit_status(self, repository_url: str, scraped_commit_at: datetime) -> CommitStatus:
        """Compare the scraped commit time with the stored entry, if any."""
        entry = await self.catalog.find_by_repository_url(repository_url)
        if entry is None:
            return CommitStatus(is_new=True, should_update=True)
        changed = _as_utc(entry.last_commit_at) != _as_utc(scraped_commit_at)
        return CommitStatus(is_new=False, should_update=changed, existing_catalog_id=entry.id)

    async def should_generate_summary(self, repository_url: str, scraped_commit_at: datetime) -> bool:
        status = await self.commit_status(repository_url, scraped_commit_at)
        if status.is_new or status.should_update:
            decision = True
        else:
            decision = not await self.catalog.summary_exists(status.existing_catalog_id)
        self._log.debug(
            "summary_gate",
            repository_url=repository_url,
            is_new=status.is_new,
            commit_changed=status.should_update,
            generate=decision,
        )
        return decision
