"""HTTP request/response schemas."""

from pydantic import BaseModel, ConfigDict, Field


class TranscribeResponse(BaseModel):
    """POST /api/transcribe response body."""

    model_config = ConfigDict(populate_by_name=True)

    transcribed_text: str = Field(alias="transcribedText")


class ErrorResponse(BaseModel):
    error: str


class StatusResponse(BaseModel):
    """GET /status response body."""

    status: str
    connections: int
    uptime: float


class LanguageOption(BaseModel):
    code: str
    name: str
