"""
Pydantic models for the HTTP API request/response contracts.
"""

from pydantic import BaseModel, Field, StrictStr

from .models import RetrievalResult


class ChatRequest(BaseModel):
    """Request body for the POST /api/chat endpoint."""

    message: StrictStr = Field(..., min_length=1, description="The user's question")


class SourceOut(BaseModel):
    """A document cited by an answer."""

    title: str = Field(..., description="Page title")
    url: str = Field(..., description="Link to the page in Confluence")
    excerpt: str = Field(..., description="Beginning of the page text")


class ChatResponse(BaseModel):
    """Response body from the POST /api/chat endpoint."""

    answer: str = Field(..., description="The generated answer")
    sources: list[SourceOut] = Field(
        default_factory=list, description="Retrieved pages, most similar first"
    )

    @classmethod
    def from_result(cls, result: RetrievalResult) -> "ChatResponse":
        return cls(
            answer=result.answer,
            sources=[
                SourceOut(title=s.title, url=s.url, excerpt=s.excerpt)
                for s in result.sources
            ],
        )


class HealthResponse(BaseModel):
    """Response body from the GET /api/health endpoint."""

    status: str = Field(..., description="'ready' or 'initializing'")
    error: str | None = Field(None, description="Initialization failure, if any")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
