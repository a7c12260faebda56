"""Shared fixtures and GitHub payload factories."""

import base64
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gasingest.config import IngestSettings, SearchConfig
from gasingest.core.classifier import ScriptType
from gasingest.models.library import ScrapedLibraryData


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_readme(name: str) -> str:
    """Load a README fixture."""
    return (FIXTURES_DIR / f"{name}.md").read_text(encoding="utf-8")


def repo_payload(name: str, owner: str = "octo", stars: int = 5) -> dict:
    """Minimal GitHub repository JSON object."""
    return {
        "name": name,
        "full_name": f"{owner}/{name}",
        "html_url": f"https://github.com/{owner}/{name}",
        "description": f"{name} description",
        "stargazers_count": stars,
        "updated_at": "2024-05-01T00:00:00Z",
        "owner": {"login": owner, "html_url": f"https://github.com/{owner}"},
        "license": {"name": "MIT License", "url": "https://api.github.com/licenses/mit"},
    }


def readme_payload(text: str) -> dict:
    """GitHub README JSON with base64 content split into lines."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    lines = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
    return {"content": lines, "encoding": "base64"}


def commits_payload(date: str) -> list:
    return [{"sha": "abc", "commit": {"committer": {"date": date}}}]


def recent_iso(days: int = 10) -> str:
    moment = datetime.now(timezone.utc) - timedelta(days=days)
    return moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def make_library(
    name: str = "lib",
    script_id: str = "1" + "A" * 29,
    last_commit_at: datetime | None = None,
    star_count: int = 5,
) -> ScrapedLibraryData:
    return ScrapedLibraryData(
        name=name,
        script_id=script_id,
        script_type=ScriptType.LIBRARY,
        repository_url=f"https://github.com/octo/{name}",
        author_name="octo",
        author_url="https://github.com/octo",
        description="A library",
        star_count=star_count,
        last_commit_at=last_commit_at or datetime.now(timezone.utc) - timedelta(days=10),
        readme_content="Script ID: " + script_id,
    )


@pytest.fixture
def settings() -> IngestSettings:
    """Settings with no delays or retries."""
    return IngestSettings(
        _env_file=None,
        github_token="test-token",
        request_delay_ms=0,
        page_delay_ms=0,
        retry_enabled=False,
        refresh_delay_ms=0,
    )


@pytest.fixture
def search_config(settings) -> SearchConfig:
    return SearchConfig.from_settings(settings, tags=["google-apps-script"])
