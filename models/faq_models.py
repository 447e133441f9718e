"""
Data models for FAQ entries and retrieval matches.
"""

import uuid
from typing import List

from pydantic import BaseModel, Field


# Qdrant point ids must be UUIDs or integers
FAQ_ID_NAMESPACE = uuid.UUID("5b0f8f3e-6a52-4c3f-9d87-0c1e6f1a2b7d")


class FaqEntry(BaseModel):
    """A question/answer pair destined for the vector index."""
    id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    embedding: List[float] = Field(default_factory=list)

    @property
    def point_id(self) -> str:
        return str(uuid.uuid5(FAQ_ID_NAMESPACE, self.id))

    @property
    def embedding_text(self) -> str:
        return f"{self.question} {self.answer}"

    def payload(self) -> dict:
        return {"faq_id": self.id, "question": self.question, "answer": self.answer}


class RetrievalMatch(BaseModel):
    """One ranked FAQ match returned by the similarity index."""
    question: str
    answer: str
    score: float = 0.0

    def render(self) -> str:
        return f"Q: {self.question}\nA: {self.answer}"
