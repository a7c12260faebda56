"""Custom exception hierarchy for gasingest."""


class GasIngestError(Exception):
    """Base exception for all gasingest errors."""


class ConfigError(GasIngestError):
    """Invalid configuration or run parameters."""


class InvalidRepositoryUrlError(GasIngestError):
    """Repository URL is not a github.com owner/repo URL."""


class GitHubApiError(GasIngestError):
    """GitHub API returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GitHubApiError):
    """Rate limited or forbidden by the GitHub API."""


class QueryRejectedError(GitHubApiError):
    """Search query rejected as unprocessable (HTTP 422)."""


class CatalogError(GasIngestError):
    """Catalog store operation failed."""
