"""Repository reference model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class RepositoryRef(BaseModel):
    """A candidate repository returned by GitHub search or metadata fetch."""

    url: str
    name: str
    full_name: str
    description: str | None = None
    owner_login: str
    owner_url: str
    stargazers_count: int = 0
    license_name: str | None = None
    license_url: str | None = None
    updated_at: datetime | None = None
    raw: dict[str, Any] = {}

    model_config = {"frozen": True}

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "RepositoryRef":
        """Build from a GitHub repository JSON object."""
        owner = payload.get("owner") or {}
        license_info = payload.get("license") or {}
        return cls(
            url=payload["html_url"],
            name=payload["name"],
            full_name=payload.get("full_name") or f"{owner.get('login', '')}/{payload['name']}",
            description=payload.get("description"),
            owner_login=owner.get("login", ""),
            owner_url=owner.get("html_url", ""),
            stargazers_count=payload.get("stargazers_count") or 0,
            license_name=license_info.get("name"),
            license_url=license_info.get("url"),
            updated_at=payload.get("updated_at"),
            raw=payload,
        )
