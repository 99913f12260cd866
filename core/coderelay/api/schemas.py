"""Pydantic models for API request/response schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ChatRequest(BaseModel):
    """Chat message request."""

    message: str
    model: str | None = None


class RecommendationModel(BaseModel):
    """A pending code recommendation."""

    file_path: str
    code: str
    language: str | None = None
    line_numbers: list[str] | None = None


class ApplyRequest(BaseModel):
    """Apply one recommendation, or all of them with "*"."""

    file_path: str = "*"


class ApplyResultModel(BaseModel):
    """Outcome of applying one recommendation."""

    file_path: str
    ok: bool
    error: str | None = None
    not_found: bool = False


class ApplyResponse(BaseModel):
    """Apply results plus the message shown to the user."""

    request_id: str
    results: list[ApplyResultModel]
    message: str


class PendingResponse(BaseModel):
    """All pending recommendation sets by request id."""

    pending: dict[str, list[RecommendationModel]]


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool
    message: str | None = None
