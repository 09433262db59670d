"""Stream relay request schema."""

from pydantic import BaseModel, ConfigDict, Field


class StreamRequest(BaseModel):
    """Body of POST /api/v1/stream."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    max_tokens: int | None = Field(default=None, alias="maxTokens", ge=1, le=16384)
