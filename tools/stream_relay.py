"""
Pass-through relay for generation streams.

The relay forwards every upstream chunk unchanged and in order while it
reassembles the generated text from the newline-delimited records it sees.
When the upstream ends it appends the assistant turn to the session and
persists it once. Parsing only observes the stream; it never filters it.
"""

import json
from typing import Iterable, Iterator, List, Optional

from models import Session
from tools.session_store import SessionStore, SessionStoreError
from logger import get_logger

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


def parse_fragment(line: bytes) -> Optional[str]:
    """Return the text fragment carried by one record, or None."""
    try:
        text = line.decode("utf-8").strip()
    except UnicodeDecodeError:
        return None

    if text.startswith("data:"):
        text = text[5:].strip()
    if not text or text == DONE_SENTINEL:
        return None

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Skipping non-JSON stream line", line=text[:80])
        return None

    if not isinstance(payload, dict):
        return None
    fragment = payload.get("response")
    return fragment if isinstance(fragment, str) else None


class StreamRelay:
    """Tees a generation stream into the response and the session history."""

    def __init__(self, session: Session, session_store: SessionStore, ttl_seconds: int):
        self.session = session
        self.session_store = session_store
        self.ttl_seconds = ttl_seconds
        self._buffer = b""
        self._fragments: List[str] = []
        self.finished = False

    @property
    def text(self) -> str:
        return "".join(self._fragments)

    def feed(self, chunk: bytes) -> bytes:
        """Observe one upstream chunk and hand it back untouched."""
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        for line in lines:
            self._observe(line)
        return chunk

    def _observe(self, line: bytes) -> None:
        fragment = parse_fragment(line)
        if fragment:
            self._fragments.append(fragment)

    def finish(self) -> bool:
        """
        Finalize once the upstream is exhausted.

        Returns:
            True if an assistant turn was persisted
        """
        if self.finished:
            return False
        self.finished = True

        # the last record may end at EOF instead of a newline
        if self._buffer:
            self._observe(self._buffer)
            self._buffer = b""

        text = self.text
        if not text:
            logger.info("Stream ended without text; session not updated", session_id=self.session.id)
            return False

        self.session.add_turn("assistant", text)
        try:
            self.session_store.put(self.session.id, self.session, self.ttl_seconds)
        except SessionStoreError as e:
            logger.session_write(self.session.id, success=False, error=str(e))
            return False

        logger.session_write(self.session.id, success=True, messages=len(self.session.messages))
        return True

    def relay(self, upstream: Iterable[bytes]) -> Iterator[bytes]:
        """Yield upstream chunks as they arrive, then finalize."""
        for chunk in upstream:
            yield self.feed(chunk)
        self.finish()
