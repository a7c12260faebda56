"""AI summary request and record models."""

from pydantic import BaseModel


class SummaryRequest(BaseModel):
    """Input to the external summary service."""

    source_url: str


class SummaryRecord(BaseModel):
    """Opaque summary produced by the external summary service."""

    library_name: str = ""
    purpose: str = ""
    target_users: str = ""
    core_problem: str = ""
    main_benefits: list[str] = []
    tags: list[str] = []

    model_config = {"extra": "allow"}
