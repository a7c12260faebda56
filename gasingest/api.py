"""
FastAPI trigger surface for scheduled ingestion jobs.

The /api/cron endpoints perform no authentication. Bind the server to a
private interface or put it behind a gateway that only the scheduler can reach.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from gasingest import __version__
from gasingest.catalog import CatalogStore, SQLiteCatalog
from gasingest.config import IngestSettings, SearchConfig, SearchSort
from gasingest.core.client import GitHubClient, MAX_PER_PAGE
from gasingest.core.gate import SummaryGate
from gasingest.core.interfaces import SummaryService
from gasingest.core.orchestrator import BulkIngestor
from gasingest.core.refresher import CatalogRefresher
from gasingest.core.scraper import LibraryScraper
from gasingest.exceptions import ConfigError
from gasingest.logging import configure_logging, get_logger


# Request/Response models
class BulkRegisterRequest(BaseModel):
    """Request body for a scheduled ingestion run over one tag."""

    tag: str = Field(..., min_length=1, description="GitHub topic to search")
    max_pages: int = Field(default=1, ge=1, le=10, description="Pages 1..max_pages are processed")
    per_page: int = Field(default=10, ge=1, le=MAX_PER_PAGE, description="Repositories per page")
    sort: SearchSort = Field(default=SearchSort.UPDATED, description="Search sort order")
    generate_summary: Optional[bool] = Field(
        default=None,
        description="Generate AI summaries for new or changed repositories, "
        "GASINGEST_GENERATE_SUMMARY when omitted. "
        "Requires a summary service on app.state.summary_service.",
    )


class BulkRegisterResponse(BaseModel):
    success: bool
    tag: str
    total: int
    success_count: int
    error_count: int
    duplicate_count: int
    stale_count: int
    errors: list[str]


class BulkUpdateRequest(BaseModel):
    """Request body for the scheduled refresh of existing entries."""

    batch_size: int = Field(default=10, ge=1, le=50, description="Entries refreshed concurrently")
    delay_ms: int = Field(default=500, ge=0, le=60000, description="Delay between batches")
    exclude_rejected: bool = Field(default=True, description="Skip rejected entries")
    generate_summary: Optional[bool] = Field(
        default=None, description="GASINGEST_GENERATE_SUMMARY when omitted"
    )


class BulkUpdateResponse(BaseModel):
    success: bool
    total: int
    success_count: int
    error_count: int
    skipped_count: int
    summary_count: int
    errors: list[str]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


class ConfigResponse(BaseModel):
    """Effective ingestion configuration, without secrets."""

    tags: list[str] = Field(..., description="Default topic tags, OR-combined (at most 5 used)")
    per_page: int = Field(..., description="Default repositories per search page")
    sort: str = Field(..., description="Default sort: 'updated' or 'stars'")
    request_delay_ms: int = Field(..., description="Delay between repositories within a page")
    page_delay_ms: int = Field(..., description="Delay between search pages")
    max_requests_per_hour: int = Field(..., description="Request budget used for run warnings")
    staleness_years: int = Field(..., description="Repositories with older last commits are skipped")
    retry_enabled: bool = Field(..., description="Retry 429/5xx and transport errors")
    max_retries: int = Field(..., description="Retry attempts before giving up")
    authenticated: bool = Field(..., description="Whether a GitHub token is configured")
    log_level: str


def get_settings() -> IngestSettings:
    return IngestSettings()


async def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


async def get_client(settings: IngestSettings = Depends(get_settings)) -> AsyncIterator[GitHubClient]:
    async with GitHubClient(settings) as client:
        yield client


def get_summary_service(request: Request) -> Optional[SummaryService]:
    return getattr(request.app.state, "summary_service", None)


def _resolve_summary_flag(requested: Optional[bool], settings: IngestSettings) -> bool:
    return settings.generate_summary if requested is None else requested


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the catalog for the app lifetime."""
    settings = IngestSettings()
    configure_logging(settings)
    app.state.catalog = SQLiteCatalog(settings.catalog_path)
    yield
    await app.state.catalog.close()


app = FastAPI(
    title="gasingest API",
    description="Scheduled ingestion of Google Apps Script libraries",
    version=__version__,
    lifespan=lifespan,
)
_log = get_logger("api")


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/api/config", response_model=ConfigResponse, tags=["System"])
async def get_default_config(settings: IngestSettings = Depends(get_settings)):
    """
    Get the effective configuration.

    Values come from environment variables with the `GASINGEST_` prefix,
    e.g. `GASINGEST_STALENESS_YEARS=3`.
    """
    return ConfigResponse(
        tags=settings.tags,
        per_page=settings.per_page,
        sort=settings.sort.value,
        request_delay_ms=settings.request_delay_ms,
        page_delay_ms=settings.page_delay_ms,
        max_requests_per_hour=settings.max_requests_per_hour,
        staleness_years=settings.staleness_years,
        retry_enabled=settings.retry_enabled,
        max_retries=settings.max_retries,
        authenticated=bool(settings.github_token),
        log_level=settings.log_level,
    )


@app.post("/api/cron/bulk-register", response_model=BulkRegisterResponse, tags=["Cron"])
async def bulk_register(
    body: BulkRegisterRequest,
    settings: IngestSettings = Depends(get_settings),
    catalog: CatalogStore = Depends(get_catalog),
    client: GitHubClient = Depends(get_client),
    summary_service: Optional[SummaryService] = Depends(get_summary_service),
):
    """Ingest pages 1..max_pages of repositories tagged with one topic."""
    try:
        config = SearchConfig.from_settings(settings, tags=[body.tag])
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ingestor = BulkIngestor(
        client,
        config,
        settings=settings,
        duplicate_checker=catalog.is_duplicate,
        save_callback=catalog.save,
        summary_gate=SummaryGate(catalog),
        summary_service=summary_service,
        summary_save_callback=catalog.save_summary,
    )
    result = await ingestor.run(
        start_page=1,
        end_page=body.max_pages,
        per_page=body.per_page,
        sort=body.sort,
        generate_summary=_resolve_summary_flag(body.generate_summary, settings),
    )
    _log.info("bulk_register_complete", tag=body.tag, success_count=result.success_count)
    return BulkRegisterResponse(
        success=result.success,
        tag=body.tag,
        total=result.total,
        success_count=result.success_count,
        error_count=result.error_count,
        duplicate_count=result.duplicate_count,
        stale_count=result.stale_count,
        errors=result.errors,
    )


@app.post("/api/cron/bulk-update-existing", response_model=BulkUpdateResponse, tags=["Cron"])
async def bulk_update_existing(
    body: BulkUpdateRequest = BulkUpdateRequest(),
    settings: IngestSettings = Depends(get_settings),
    catalog: CatalogStore = Depends(get_catalog),
    client: GitHubClient = Depends(get_client),
    summary_service: Optional[SummaryService] = Depends(get_summary_service),
):
    """Refresh metadata of existing catalog entries."""
    config = SearchConfig.from_settings(settings)
    refresher = CatalogRefresher(
        LibraryScraper(client, config),
        catalog,
        summary_service=summary_service,
        max_reported_errors=settings.max_reported_errors,
    )
    result = await refresher.run(
        batch_size=body.batch_size,
        delay_ms=body.delay_ms,
        exclude_rejected=body.exclude_rejected,
        generate_summary=_resolve_summary_flag(body.generate_summary, settings),
    )
    return BulkUpdateResponse(
        success=result.success,
        total=result.total,
        success_count=result.success_count,
        error_count=result.error_count,
        skipped_count=result.skipped_count,
        summary_count=result.summary_count,
        errors=result.errors,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
