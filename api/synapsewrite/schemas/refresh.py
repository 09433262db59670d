"""Sources refresh schemas."""

from pydantic import BaseModel, Field


class SourceItem(BaseModel):
    """One search result used as evidence."""

    url: str
    label: str
    snippet: str = ""


class RefreshResponse(BaseModel):
    """Evidence gathered for a prompt."""

    sources: list[SourceItem] = Field(default_factory=list)
    confidence: float | None = None
    evidence_summary: str = Field(serialization_alias="evidenceSummary")
    warning: str | None = None
    error: str | None = None
