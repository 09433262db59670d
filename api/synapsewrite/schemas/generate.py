"""Search-grounded generation schemas."""

from pydantic import BaseModel, Field


class GenerateSource(BaseModel):
    """A search hit handed to the model as evidence."""

    title: str
    link: str
    snippet: str = ""


class Verification(BaseModel):
    """How far the article could be checked against live search."""

    verified_by_search: bool = Field(serialization_alias="verifiedBySearch")
    sources_count: int = Field(serialization_alias="sourcesCount")
    note: str = ""


class GenerateResponse(BaseModel):
    """Generated article with the evidence it was written from."""

    content: str
    sources: list[GenerateSource] = Field(default_factory=list)
    verification: Verification
