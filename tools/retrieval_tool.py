"""
FAQ retrieval against the vector index.

Turns free text into a Cohere embedding, queries Qdrant for the nearest FAQ
entries and renders them as a "Q:/A:" context block for the system prompt.
Retrieval is best-effort: every failure mode is wrapped in a RetrievalError
at the point it happens, and ``retrieve`` collapses exactly those errors into
an empty result.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import time

from pydantic import ValidationError
from qdrant_client.models import Distance, PointStruct, VectorParams

from connection import Connections
from models import FaqEntry, RetrievalMatch
from logger import get_logger

logger = get_logger(__name__)


class RetrievalError(Exception):
    """Base class for retrieval failures."""
    pass


class EmbeddingError(RetrievalError):
    """Error during embedding generation."""
    pass


class VectorSearchError(RetrievalError):
    """Error talking to the vector index."""
    pass


class MalformedMatchError(RetrievalError):
    """A match came back without usable question/answer metadata."""
    pass


@dataclass
class RetrievalResult:
    """Outcome of a retrieval: ranked matches, or the reason there are none."""
    matches: List[RetrievalMatch] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def context(self) -> str:
        return "\n\n".join(match.render() for match in self.matches)

    @property
    def ok(self) -> bool:
        return self.error is None


class RetrievalTool:
    """Embeds queries and searches the FAQ collection."""

    def __init__(
        self,
        connections: Connections,
        collection_name: str = "faq_entries",
        embedding_model: str = "embed-english-v3.0",
        top_k: int = 3
    ):
        self.connections = connections
        self.collection_name = collection_name
        self.embedding_model = embedding_model
        self.top_k = top_k

    def embed_texts(self, texts: List[str], input_type: str = "search_query") -> List[List[float]]:
        """
        Generate embedding vectors with Cohere.

        Args:
            texts: Texts to embed
            input_type: ``search_query`` for lookups, ``search_document`` for indexing

        Returns:
            One vector per text, or an empty list when the service returned no data

        Raises:
            EmbeddingError: If the client cannot be created or the call fails
        """
        try:
            start_time = time.time()
            client = self.connections.get_cohere_client()
            response = client.embed(
                texts=texts,
                model=self.embedding_model,
                input_type=input_type
            )
        except Exception as e:
            logger.error(f"Embedding generation failed: {type(e).__name__}: {e}")
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        embeddings = getattr(response, "embeddings", None)
        if not embeddings:
            logger.warning("Embedding result is empty", texts=len(texts))
            return []

        logger.debug(
            "Embeddings generated",
            count=len(embeddings),
            duration_ms=round((time.time() - start_time) * 1000, 2)
        )
        return [list(vector) for vector in embeddings]

    def search(self, vector: List[float], limit: Optional[int] = None) -> List[RetrievalMatch]:
        """
        Query the collection for the nearest FAQ entries.

        Raises:
            VectorSearchError: If the index cannot be queried
            MalformedMatchError: If a match lacks question/answer metadata
        """
        limit = limit or self.top_k
        start_time = time.time()
        try:
            client = self.connections.get_qdrant_client()
            points = client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                with_payload=True
            ).points
        except Exception as e:
            logger.error(f"Vector search failed: {type(e).__name__}: {e}")
            raise VectorSearchError(f"Vector search failed: {e}") from e

        logger.vector_query(
            collection=self.collection_name,
            results_count=len(points),
            duration_ms=(time.time() - start_time) * 1000
        )

        matches = []
        for point in points:
            payload = point.payload or {}
            try:
                matches.append(RetrievalMatch(
                    question=payload.get("question"),
                    answer=payload.get("answer"),
                    score=point.score or 0.0
                ))
            except ValidationError as e:
                raise MalformedMatchError(f"Point {point.id} has malformed metadata") from e
        return matches

    def retrieve(self, query: str) -> RetrievalResult:
        """
        Best-effort FAQ context for a user message.

        Never raises for embedding, search or metadata failures.
        """
        try:
            vectors = self.embed_texts([query], input_type="search_query")
            if not vectors:
                return RetrievalResult(error="no embedding returned")
            return RetrievalResult(matches=self.search(vectors[0]))
        except RetrievalError as e:
            logger.warning("Retrieval degraded to no context", reason=str(e))
            return RetrievalResult(error=str(e))

    def ensure_collection(self, vector_size: int) -> bool:
        """
        Create the FAQ collection if it does not exist yet.

        Returns:
            True when the collection was created
        """
        try:
            client = self.connections.get_qdrant_client()
            if client.collection_exists(self.collection_name):
                return False
            client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=vector_size, distance=Distance.COSINE)
            )
        except Exception as e:
            raise VectorSearchError(f"Could not prepare collection '{self.collection_name}': {e}") from e

        logger.info(f"Created collection '{self.collection_name}'", vector_size=vector_size)
        return True

    def upsert_entries(self, entries: List[FaqEntry]) -> int:
        """Store embedded FAQ entries, replacing any with the same id."""
        points = [
            PointStruct(id=entry.point_id, vector=entry.embedding, payload=entry.payload())
            for entry in entries
        ]
        try:
            self.connections.get_qdrant_client().upsert(
                collection_name=self.collection_name,
                points=points
            )
        except Exception as e:
            raise VectorSearchError(f"Upsert into '{self.collection_name}' failed: {e}") from e

        logger.info("FAQ entries upserted", collection=self.collection_name, count=len(points))
        return len(points)
