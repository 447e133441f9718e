"""
Connection utilities for Qdrant, Cohere, Gemini and Redis.

Clients are created lazily from an AppConfig and reused for the lifetime
of the Connections instance. SDK exceptions propagate unchanged.
"""

import time
from typing import Optional

import cohere
import google.generativeai as genai
import redis
from qdrant_client import QdrantClient

from config import AppConfig
from logger import get_logger

logger = get_logger(__name__)


class QdrantConnectionError(Exception):
    """Qdrant connection error - wraps raw SDK exceptions."""
    pass


class CohereConnectionError(Exception):
    """Cohere client could not be configured."""
    pass


class GeminiConnectionError(Exception):
    """Gemini connection error."""
    pass


class RedisConnectionError(Exception):
    """Redis client could not be configured."""
    pass


class Connections:
    """Manages connections to external services."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._qdrant_client: Optional[QdrantClient] = None
        self._cohere_client: Optional[cohere.Client] = None
        self._redis_client: Optional[redis.Redis] = None
        self._gemini_configured: bool = False

    def get_qdrant_client(self) -> QdrantClient:
        """
        Get or create Qdrant client.

        ``:memory:`` selects Qdrant's local in-process mode.
        """
        if self._qdrant_client is not None:
            return self._qdrant_client

        url = self.config.qdrant_url
        api_key = self.config.qdrant_api_key

        if not url:
            raise QdrantConnectionError("QDRANT_URL environment variable is not set")

        if url == ":memory:":
            logger.warning("[QDRANT] Using local in-memory index - seeded FAQs are lost on restart")
            self._qdrant_client = QdrantClient(location=":memory:")
        else:
            logger.info(f"[QDRANT] Creating client with url={url[:50]}...")
            self._qdrant_client = QdrantClient(
                url=url,
                api_key=api_key if api_key else None,
                timeout=30
            )

        logger.info("[QDRANT] Client instance created")
        return self._qdrant_client

    def get_cohere_client(self) -> cohere.Client:
        """Get or create the Cohere embeddings client."""
        if self._cohere_client is not None:
            return self._cohere_client

        if not self.config.cohere_api_key:
            raise CohereConnectionError("COHERE_API_KEY environment variable is required for embeddings")

        self._cohere_client = cohere.Client(api_key=self.config.cohere_api_key)
        logger.info("[COHERE] Client created", embedding_model=self.config.embedding_model)
        return self._cohere_client

    def get_redis_client(self) -> redis.Redis:
        """Get or create the Redis client used for session storage."""
        if self._redis_client is not None:
            return self._redis_client

        if not self.config.redis_url:
            raise RedisConnectionError("REDIS_URL environment variable is not set")

        self._redis_client = redis.Redis.from_url(self.config.redis_url, decode_responses=True)
        logger.info("[REDIS] Client created")
        return self._redis_client

    def configure_gemini(self) -> bool:
        """Configure Gemini API."""
        if self._gemini_configured:
            return True

        if not self.config.gemini_api_key:
            raise GeminiConnectionError("GEMINI_API_KEY not set")

        genai.configure(api_key=self.config.gemini_api_key)
        self._gemini_configured = True
        logger.info("[GEMINI] Configured successfully")
        return True

    def test_qdrant_connection(self) -> dict:
        """
        Test Qdrant connection by checking the FAQ collection.

        Returns raw result or raw exception info - never raises.
        """
        collection_name = self.config.qdrant_collection_name
        try:
            client = self.get_qdrant_client()

            start = time.time()
            exists = client.collection_exists(collection_name)
            points_count = 0
            if exists:
                points_count = client.count(collection_name=collection_name).count
            duration = (time.time() - start) * 1000

            logger.info(
                f"[QDRANT] Collection '{collection_name}' checked",
                exists=exists,
                points_count=points_count,
                duration_ms=round(duration, 2)
            )
            return {
                "success": True,
                "collection": collection_name,
                "exists": exists,
                "points_count": points_count,
                "duration_ms": duration
            }

        except Exception as e:
            error_info = {
                "success": False,
                "exception_type": type(e).__name__,
                "exception_message": str(e),
            }
            logger.error(f"[QDRANT] FAILED: {error_info}")
            return error_info

    def close(self) -> None:
        """Release pooled network clients."""
        if self._qdrant_client is not None:
            self._qdrant_client.close()
            self._qdrant_client = None
        if self._redis_client is not None:
            self._redis_client.close()
            self._redis_client = None
