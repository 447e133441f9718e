"""Service adapters for the FAQ Chat Widget API."""

from .session_store import (
    SessionStore, InMemorySessionStore, RedisSessionStore,
    SessionStoreError, new_session_id, build_session_store
)
from .retrieval_tool import (
    RetrievalTool, RetrievalResult, RetrievalError,
    EmbeddingError, VectorSearchError, MalformedMatchError
)
from .generation_client import (
    GenerationClient, GeminiGenerationClient, WorkersAIGenerationClient,
    GenerationError, build_generation_client
)
from .stream_relay import StreamRelay

__all__ = [
    "SessionStore", "InMemorySessionStore", "RedisSessionStore",
    "SessionStoreError", "new_session_id", "build_session_store",
    "RetrievalTool", "RetrievalResult", "RetrievalError",
    "EmbeddingError", "VectorSearchError", "MalformedMatchError",
    "GenerationClient", "GeminiGenerationClient", "WorkersAIGenerationClient",
    "GenerationError", "build_generation_client",
    "StreamRelay"
]
