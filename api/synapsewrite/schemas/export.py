"""WordPress export schemas."""

from pydantic import BaseModel, field_validator


class WordPressExportRequest(BaseModel):
    """Request to publish an article as a WordPress draft."""

    title: str
    content: str  # HTML, not Markdown

    @field_validator("title", "content")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty values."""
        if not v.strip():
            raise ValueError("Missing title or content")
        return v


class WordPressExportResponse(BaseModel):
    """Draft created on the WordPress site."""

    success: bool = True
    post_id: int
    edit_url: str
