"""Unit tests for logging setup and run context binding."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from gasingest.config import IngestSettings, LogFormat
from gasingest.core.orchestrator import BulkIngestor
from gasingest.logging import configure_logging, get_logger, run_context
from gasingest.models.result import TagSearchResult


class TestRunContext:
    """Per-run context variables."""

    def test_binds_and_clears(self):
        with run_context("ingest", tag="gmail") as run_id:
            bound = structlog.contextvars.get_contextvars()
            assert bound["job"] == "ingest"
            assert bound["run_id"] == run_id
            assert bound["tag"] == "gmail"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_fresh_id_per_run(self):
        with run_context("refresh") as first:
            pass
        with run_context("refresh") as second:
            pass
        assert first != second

    @pytest.mark.asyncio
    async def test_ingest_run_is_bound(self, settings, search_config):
        seen = {}

        async def search(*args):
            seen.update(structlog.contextvars.get_contextvars())
            return TagSearchResult(success=True)

        client = MagicMock()
        client.search_by_page_range = AsyncMock(side_effect=search)

        await BulkIngestor(client, search_config, settings=settings, scraper=MagicMock()).run()

        assert seen["job"] == "ingest"
        assert seen["run_id"]
        assert "run_id" not in structlog.contextvars.get_contextvars()


class TestConfigureLogging:
    """Renderer selection."""

    def test_json_renderer(self):
        configure_logging(IngestSettings(_env_file=None, log_format=LogFormat.JSON))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer(self):
        configure_logging(IngestSettings(_env_file=None, log_format=LogFormat.CONSOLE))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_logger_carries_name(self):
        logger = get_logger("ingestor")
        assert structlog.get_context(logger)["logger_name"] == "ingestor"
