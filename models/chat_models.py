"""
Data models for chat requests, prompts and API payloads.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .session_model import Turn


class ChatRequest(BaseModel):
    """Model for chat endpoint requests."""
    message: Optional[str] = None


class PromptMessage(BaseModel):
    """A role/content pair sent to the generation service."""
    role: Literal["user", "assistant", "system"]
    content: str


class HistoryResponse(BaseModel):
    """Model for history endpoint responses."""
    messages: List[Turn] = Field(default_factory=list)


class SeedResponse(BaseModel):
    """Model for seed endpoint responses."""
    success: bool = True
    count: int


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str
    detail: Optional[str] = None
    status_code: Optional[int] = None
