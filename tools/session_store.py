"""
Session persistence for chat conversations.

Two backends share one contract: ``get`` returns a Session or None and never
raises on absence, ``put`` fully replaces the stored record and expires it
after a fixed TTL.
"""

import time
import uuid
from typing import Dict, Optional, Tuple

import redis
from pydantic import ValidationError

from config import AppConfig
from connection import Connections
from models import Session
from logger import get_logger

logger = get_logger(__name__)


class SessionStoreError(Exception):
    """Raised when the backing store cannot be read or written."""
    pass


def new_session_id() -> str:
    """Mint an unguessable session identifier."""
    return "sess_" + str(uuid.uuid4())


class SessionStore:
    """Base class for session stores."""

    def get(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def put(self, session_id: str, session: Session, ttl_seconds: int) -> None:
        raise NotImplementedError

    @staticmethod
    def _parse(session_id: str, raw: Optional[str]) -> Optional[Session]:
        if raw is None:
            return None
        try:
            return Session.from_record(raw)
        except ValidationError as e:
            logger.warning(
                "Discarding malformed session record",
                session_id=session_id,
                errors=e.error_count()
            )
            return None


class InMemorySessionStore(SessionStore):
    """Process-local store with passive expiry, for development and tests."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._records: Dict[str, Tuple[float, str]] = {}

    def get(self, session_id: str) -> Optional[Session]:
        entry = self._records.get(session_id)
        if entry is None:
            return None
        expires_at, raw = entry
        if self._clock() >= expires_at:
            del self._records[session_id]
            return None
        return self._parse(session_id, raw)

    def put(self, session_id: str, session: Session, ttl_seconds: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._records[session_id] = (now + ttl_seconds, session.to_record())

    def _sweep(self, now: float) -> None:
        """Drop every expired record, including ids that are never read again."""
        expired = [key for key, (expires_at, _) in self._records.items() if now >= expires_at]
        for key in expired:
            del self._records[key]

    def __len__(self) -> int:
        return len(self._records)


class RedisSessionStore(SessionStore):
    """Redis-backed store; expiry is enforced by Redis itself."""

    def __init__(self, client: redis.Redis, key_prefix: str = "chatbot_session:"):
        self.client = client
        self.key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    def get(self, session_id: str) -> Optional[Session]:
        try:
            raw = self.client.get(self._key(session_id))
        except redis.RedisError as e:
            raise SessionStoreError(f"Session read failed: {e}") from e
        return self._parse(session_id, raw)

    def put(self, session_id: str, session: Session, ttl_seconds: int) -> None:
        try:
            self.client.set(self._key(session_id), session.to_record(), ex=ttl_seconds)
        except redis.RedisError as e:
            raise SessionStoreError(f"Session write failed: {e}") from e


def build_session_store(config: AppConfig, connections: Connections) -> SessionStore:
    """Pick the Redis store when REDIS_URL is configured, otherwise memory."""
    if config.redis_url:
        logger.info("Using Redis session store", key_prefix=config.session_key_prefix)
        return RedisSessionStore(connections.get_redis_client(), key_prefix=config.session_key_prefix)

    logger.warning("REDIS_URL not set - sessions are kept in process memory only")
    return InMemorySessionStore()
