"""Scraped library data model."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from gasingest.core.classifier import ScriptType


class LibraryStatus(str, Enum):
    """Catalog lifecycle status."""
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class ScrapedLibraryData(BaseModel):
    """Normalized record ready for persistence."""

    name: str
    script_id: str = Field(min_length=1)
    script_type: ScriptType
    repository_url: str
    author_name: str
    author_url: str
    description: str = ""
    license_type: str | None = None
    license_url: str | None = None
    star_count: int = 0
    last_commit_at: datetime
    status: LibraryStatus = LibraryStatus.PENDING
    # Only kept for libraries
    readme_content: str | None = None

    model_config = {"frozen": True}

    @field_validator("last_commit_at")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
