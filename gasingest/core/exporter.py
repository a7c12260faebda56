"""Export utilities for ingestion run results."""

import json
from pathlib import Path

from gasingest.models.result import BulkScrapeResult


def to_json(result: BulkScrapeResult, indent: int = 2) -> str:
    """
    Convert BulkScrapeResult to a JSON string.

    README content is dropped to keep reports readable.
    """
    return json.dumps(to_dict(result), indent=indent, ensure_ascii=False)


def to_dict(result: BulkScrapeResult, include_readme: bool = False) -> dict:
    """
    Convert BulkScrapeResult to a dictionary, with the reported errors.

    Args:
        result: BulkScrapeResult to convert
        include_readme: Keep readme_content of each record

    Returns:
        Dictionary representation
    """
    exclude = None if include_readme else {"results": {"__all__": {"data": {"readme_content"}}}}
    data = result.model_dump(mode="json", exclude=exclude)
    data["errors"] = result.errors
    return data


def save_json(
    result: BulkScrapeResult,
    filepath: str | Path,
    indent: int = 2,
) -> Path:
    """
    Save BulkScrapeResult to a JSON file.

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_json(result, indent=indent), encoding="utf-8")
    return path


def load_json(filepath: str | Path) -> BulkScrapeResult:
    """Load a BulkScrapeResult saved with save_json."""
    data = json.loads(Path(filepath).read_text(encoding="utf-8"))
    data.pop("errors", None)
    return BulkScrapeResult.model_validate(data)
