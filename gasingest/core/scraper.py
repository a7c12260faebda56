"""Single-repository scraper: GitHub metadata + README -> ScrapedLibraryData."""

import asyncio
from datetime import datetime

from gasingest.config import SearchConfig
from gasingest.core.classifier import ScriptType, classify, extract_script_id
from gasingest.core.client import GitHubClient, parse_github_url
from gasingest.exceptions import GasIngestError
from gasingest.logging import get_logger
from gasingest.models.library import LibraryStatus, ScrapedLibraryData
from gasingest.models.repository import RepositoryRef
from gasingest.models.result import ScrapeResult


class LibraryScraper:
    """
    Scrape one repository into a tagged ScrapeResult.

    Example:
        scraper = LibraryScraper(client, config)
        result = await scraper.scrape("https://github.com/owner/repo")
    """

    def __init__(self, client: GitHubClient, config: SearchConfig):
        self.client = client
        self.config = config
        self._log = get_logger("scraper")

    async def scrape(self, repository_url: str) -> ScrapeResult:
        """
        Scrape a repository URL.

        Never raises for ordinary errors: URL, upstream, payload and
        classification problems come back as a failed ScrapeResult.
        Cancellation still propagates.
        """
        try:
            owner, repo = parse_github_url(repository_url)
        except GasIngestError as e:
            return ScrapeResult.failure(str(e))

        info, readme, last_commit_at = await asyncio.gather(
            self.client.fetch_repository_info(owner, repo),
            self.client.fetch_readme(owner, repo),
            self.client.fetch_last_commit_date(owner, repo),
            return_exceptions=True,
        )
        for outcome in (info, readme, last_commit_at):
            if isinstance(outcome, Exception):
                self._log.warning("scrape_failed", repository_url=repository_url, error=repr(outcome))
                return ScrapeResult.failure(str(outcome) or type(outcome).__name__)
            if isinstance(outcome, BaseException):
                raise outcome

        text = readme or ""
        script_id = extract_script_id(text, self.config.script_id_patterns)
        classification = classify(
            text,
            script_id,
            fallback_id=f"{owner}/{repo}",
            patterns=self.config.script_id_patterns,
            web_app_patterns=self.config.web_app_patterns,
        )
        if classification is None:
            return ScrapeResult.failure(
                "Script ID not found in README and no web app source files detected"
            )
        if last_commit_at is None:
            return ScrapeResult.failure("Could not determine last commit date")

        data = self._build_data(
            info, classification.script_id, classification.script_type, last_commit_at, text
        )
        self._log.debug(
            "scrape_complete",
            repository_url=repository_url,
            script_id=data.script_id,
            script_type=data.script_type.value,
        )
        return ScrapeResult.ok(data)

    @staticmethod
    def _build_data(
        info: RepositoryRef,
        script_id: str,
        script_type: ScriptType,
        last_commit_at: datetime,
        readme: str,
    ) -> ScrapedLibraryData:
        return ScrapedLibraryData(
            name=info.name,
            script_id=script_id,
            script_type=script_type,
            repository_url=info.url,
            author_name=info.owner_login,
            author_url=info.owner_url,
            description=info.description or "",
            license_type=info.license_name,
            license_url=info.license_url,
            star_count=info.stargazers_count,
            last_commit_at=last_commit_at,
            status=LibraryStatus.PENDING,
            readme_content=readme if script_type == ScriptType.LIBRARY else None,
        )
