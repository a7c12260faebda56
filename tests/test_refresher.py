"""Unit tests for CatalogRefresher - mocked scraper, temporary catalog."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gasingest.catalog.sqlite_catalog import SQLiteCatalog
from gasingest.core.refresher import CatalogRefresher
from gasingest.exceptions import ConfigError
from gasingest.models.library import LibraryStatus
from gasingest.models.result import ScrapeResult
from gasingest.models.summary import SummaryRecord

from tests.conftest import make_library


def scraper_for(results: dict) -> MagicMock:
    scraper = MagicMock()
    scraper.scrape = AsyncMock(side_effect=lambda url: results[url.rsplit("/", 1)[-1]])
    return scraper


@pytest.fixture
def catalog(tmp_path):
    return SQLiteCatalog(str(tmp_path / "catalog.db"))


async def seed(catalog, *names):
    stored = {}
    for i, name in enumerate(names):
        data = make_library(name, script_id=f"1{name.upper()}{i}".ljust(30, "Q"))
        saved = await catalog.save(data)
        stored[name] = (saved.id, data)
    return stored


class TestRefresh:
    """Metadata updates."""

    @pytest.mark.asyncio
    async def test_updates_changed_and_skips_unchanged(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a", "b")
            _, data_a = stored["a"]
            changed = data_a.model_copy(update={"star_count": 99})
            scraper = scraper_for({
                "a": ScrapeResult.ok(changed),
                "b": ScrapeResult.ok(stored["b"][1]),
            })

            result = await CatalogRefresher(scraper, catalog).run(delay_ms=0)
            entry = await catalog.get(stored["a"][0])

        assert result.total == 2
        assert result.success_count == 1
        assert result.skipped_count == 1
        assert result.error_count == 0
        assert result.success is True
        assert entry.star_count == 99

    @pytest.mark.asyncio
    async def test_scrape_errors_reported(self, catalog):
        async with catalog:
            await seed(catalog, "a", "b")
            scraper = scraper_for({
                "a": ScrapeResult.failure("GitHub API error 404"),
                "b": ScrapeResult.failure("GitHub API error 404"),
            })

            result = await CatalogRefresher(scraper, catalog, max_reported_errors=1).run(delay_ms=0)

        assert result.error_count == 2
        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].endswith(": GitHub API error 404")

    @pytest.mark.asyncio
    async def test_unexpected_exception_fails_only_that_entry(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a", "b")
            changed_b = stored["b"][1].model_copy(update={"star_count": 77})

            def scrape(url):
                if url.endswith("/a"):
                    raise KeyError("html_url")
                return ScrapeResult.ok(changed_b)

            scraper = MagicMock()
            scraper.scrape = AsyncMock(side_effect=scrape)

            result = await CatalogRefresher(scraper, catalog).run(delay_ms=0)

        assert result.error_count == 1
        assert result.success_count == 1
        assert result.success is True
        assert result.errors == ["a: 'html_url'"]

    @pytest.mark.asyncio
    async def test_gate_lookup_failure_fails_entry(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a")
            _, data = stored["a"]
            refresher = CatalogRefresher(
                scraper_for({"a": ScrapeResult.ok(data)}), catalog, summary_service=AsyncMock()
            )
            refresher.gate.should_generate_summary = AsyncMock(side_effect=RuntimeError("db locked"))

            result = await refresher.run(delay_ms=0, generate_summary=True)

        assert result.error_count == 1
        assert result.errors == ["a: db locked"]

    @pytest.mark.asyncio
    async def test_rejected_excluded_by_default(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a", "b")
            await catalog.set_status(stored["a"][0], LibraryStatus.REJECTED)
            scraper = scraper_for({"b": ScrapeResult.ok(stored["b"][1])})

            result = await CatalogRefresher(scraper, catalog).run(delay_ms=0)

        assert result.total == 1
        scraper.scrape.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_batches_with_delay_between(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a", "b", "c", "d", "e")
            scraper = scraper_for({n: ScrapeResult.ok(d) for n, (_, d) in stored.items()})

            with patch("gasingest.core.refresher.asyncio.sleep", new=AsyncMock()) as sleep:
                result = await CatalogRefresher(scraper, catalog).run(batch_size=2, delay_ms=300)

        assert result.total == 5
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.3)

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self, catalog):
        async with catalog:
            with pytest.raises(ConfigError):
                await CatalogRefresher(scraper_for({}), catalog).run(batch_size=0)


class TestRefreshSummaries:
    """Summary gate during refresh."""

    @pytest.mark.asyncio
    async def test_changed_commit_regenerates_summary(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a")
            catalog_id, data = stored["a"]
            await catalog.save_summary(catalog_id, SummaryRecord(library_name="old"))
            newer = data.model_copy(update={"last_commit_at": data.last_commit_at + timedelta(days=1)})
            service = AsyncMock(return_value=SummaryRecord(library_name="new"))

            result = await CatalogRefresher(
                scraper_for({"a": ScrapeResult.ok(newer)}), catalog, summary_service=service
            ).run(delay_ms=0, generate_summary=True)
            summary = await catalog.get_summary(catalog_id)

        assert result.summary_count == 1
        assert summary.library_name == "new"

    @pytest.mark.asyncio
    async def test_unchanged_with_summary_is_skipped(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a")
            catalog_id, data = stored["a"]
            await catalog.save_summary(catalog_id, SummaryRecord(library_name="kept"))
            service = AsyncMock()

            result = await CatalogRefresher(
                scraper_for({"a": ScrapeResult.ok(data)}), catalog, summary_service=service
            ).run(delay_ms=0, generate_summary=True)

        assert result.skipped_count == 1
        service.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backfills_missing_summary(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a")
            catalog_id, data = stored["a"]
            service = AsyncMock(return_value=SummaryRecord(library_name="a"))

            result = await CatalogRefresher(
                scraper_for({"a": ScrapeResult.ok(data)}), catalog, summary_service=service
            ).run(delay_ms=0, generate_summary=True)

            assert await catalog.summary_exists(catalog_id)

        assert result.summary_count == 1
        assert result.success_count == 1

    @pytest.mark.asyncio
    async def test_summary_failure_not_an_error(self, catalog):
        async with catalog:
            stored = await seed(catalog, "a")
            _, data = stored["a"]
            service = AsyncMock(side_effect=RuntimeError("quota"))

            result = await CatalogRefresher(
                scraper_for({"a": ScrapeResult.ok(data)}), catalog, summary_service=service
            ).run(delay_ms=0, generate_summary=True)

        assert result.error_count == 0
        assert result.summary_count == 0
