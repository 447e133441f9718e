"""
Streaming chat generation clients.

Every client returns the same wire format: a byte stream of newline-delimited
server-sent-event records, each either ``data: {"response": "<fragment>"}``
or the ``data: [DONE]`` sentinel.
"""

import json
from typing import Any, Dict, Iterable, Iterator, List

import google.generativeai as genai
import requests

from config import AppConfig
from connection import Connections
from models import PromptMessage
from logger import get_logger

logger = get_logger(__name__)

DONE_EVENT = b"data: [DONE]\n\n"


class GenerationError(Exception):
    """The generation service could not start a stream."""
    pass


def encode_event(payload: Dict[str, Any]) -> bytes:
    """Encode one record in the streaming wire format."""
    return b"data: " + json.dumps(payload, ensure_ascii=False).encode("utf-8") + b"\n\n"


class GenerationClient:
    """Base class for streaming generation backends."""

    provider = "base"
    model = ""

    def stream(self, messages: List[PromptMessage]) -> Iterator[bytes]:
        """Start a generation and return its byte stream."""
        raise NotImplementedError


class GeminiGenerationClient(GenerationClient):
    """Streams from Gemini and re-encodes text chunks into the wire format."""

    provider = "gemini"

    def __init__(self, connections: Connections, model: str = "gemini-2.5-flash"):
        self.connections = connections
        self.model = model

    def stream(self, messages: List[PromptMessage]) -> Iterator[bytes]:
        system_instruction = "\n\n".join(m.content for m in messages if m.role == "system")
        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [m.content]}
            for m in messages
            if m.role != "system"
        ]

        try:
            self.connections.configure_gemini()
            model = genai.GenerativeModel(
                model_name=self.model,
                system_instruction=system_instruction or None
            )
            response = model.generate_content(contents, stream=True)
        except Exception as e:
            logger.error(f"Gemini stream failed to start: {type(e).__name__}: {e}")
            raise GenerationError(f"Gemini generation failed: {e}") from e

        logger.generation_call(self.provider, self.model, prompt_messages=len(messages))
        return self._encode(response)

    def _encode(self, chunks: Iterable[Any]) -> Iterator[bytes]:
        for chunk in chunks:
            text = self._chunk_text(chunk)
            if text:
                yield encode_event({"response": text})
        yield DONE_EVENT

    @staticmethod
    def _chunk_text(chunk: Any) -> str:
        # .text raises ValueError for chunks without text parts (e.g. the final one)
        try:
            return chunk.text or ""
        except ValueError:
            return ""


class WorkersAIGenerationClient(GenerationClient):
    """Relays the Workers AI REST streaming endpoint byte-for-byte."""

    provider = "workers_ai"
    BASE_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"

    def __init__(
        self,
        account_id: str,
        api_token: str,
        model: str = "@cf/meta/llama-3-8b-instruct",
        timeout: int = 60,
        session: requests.Session = None
    ):
        self.account_id = account_id
        self.api_token = api_token
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return self.BASE_URL.format(account_id=self.account_id, model=self.model)

    def stream(self, messages: List[PromptMessage]) -> Iterator[bytes]:
        payload = {
            "messages": [m.model_dump() for m in messages],
            "stream": True,
        }
        try:
            response = self.session.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_token}"},
                json=payload,
                stream=True,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Workers AI stream failed to start: {type(e).__name__}: {e}")
            raise GenerationError(f"Workers AI generation failed: {e}") from e

        logger.generation_call(self.provider, self.model, prompt_messages=len(messages))
        return self._iter_bytes(response)

    @staticmethod
    def _iter_bytes(response: requests.Response) -> Iterator[bytes]:
        with response:
            for chunk in response.iter_content(chunk_size=None):
                if chunk:
                    yield chunk


def build_generation_client(config: AppConfig, connections: Connections) -> GenerationClient:
    """Create the generation client selected by GENERATION_PROVIDER."""
    if config.generation_provider == "workers_ai":
        return WorkersAIGenerationClient(
            account_id=config.workers_ai_account_id,
            api_token=config.workers_ai_api_token,
            model=config.workers_ai_model,
            timeout=config.request_timeout
        )
    return GeminiGenerationClient(connections, model=config.gemini_model_name)
