"""Data models for the FAQ Chat Widget API."""

from .session_model import Session, Turn, now_ms
from .chat_models import (
    ChatRequest, PromptMessage,
    HistoryResponse, SeedResponse, ErrorResponse
)
from .faq_models import FaqEntry, RetrievalMatch

__all__ = [
    "Session", "Turn", "now_ms",
    "ChatRequest", "PromptMessage",
    "HistoryResponse", "SeedResponse", "ErrorResponse",
    "FaqEntry", "RetrievalMatch"
]
