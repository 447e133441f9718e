"""
Data model for Session and Turn entities.

The persisted record shape is
``{id, messages: [{role, content, timestamp}], createdAt, updatedAt}``
with epoch-millisecond timestamps.
"""

import time
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["user", "assistant", "system"]


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class Turn(BaseModel):
    """A single message in a conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: int = Field(default_factory=now_ms)


class Session(BaseModel):
    """Represents one caller's conversation, keyed by the session cookie."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    messages: List[Turn] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    updated_at: int = Field(default_factory=now_ms, alias="updatedAt")

    def add_turn(self, role: Role, content: str) -> Turn:
        """Append a turn to the conversation.

        System turns only ever live in the prompt, so they are rejected here.
        """
        if role == "system":
            raise ValueError("system turns are not stored in a session")
        turn = Turn(role=role, content=content)
        self.messages.append(turn)
        self.updated_at = turn.timestamp
        return turn

    def recent_turns(self, limit: int) -> List[Turn]:
        """Return the last ``limit`` turns, oldest first."""
        if limit <= 0:
            return []
        return self.messages[-limit:]

    def to_record(self) -> str:
        """Serialize to the persisted JSON record."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_record(cls, raw: str) -> "Session":
        """Parse a persisted JSON record, raising ValidationError when malformed."""
        return cls.model_validate_json(raw)
