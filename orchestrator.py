"""
Chat orchestration for the FAQ Chat Widget API.

Resolves the caller's session, records the user turn, grounds the prompt with
retrieved FAQ context and opens a generation stream wrapped in a StreamRelay,
which persists the assistant reply once the stream ends.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

from config import AppConfig
from models import PromptMessage, Session, Turn
from tools import (
    GenerationClient, RetrievalTool, SessionStore, StreamRelay, new_session_id
)
from logger import get_logger

logger = get_logger(__name__)


class InvalidMessageError(ValueError):
    """The chat message is missing, not a string, or blank."""
    pass


@dataclass
class ChatStream:
    """A started chat reply."""
    session_id: str
    is_new_session: bool
    body: Iterator[bytes]
    relay: StreamRelay


class ChatOrchestrator:
    """Composes session storage, retrieval and generation for one chat turn."""

    def __init__(
        self,
        config: AppConfig,
        session_store: SessionStore,
        retrieval_tool: RetrievalTool,
        generation_client: GenerationClient
    ):
        self.config = config
        self.session_store = session_store
        self.retrieval_tool = retrieval_tool
        self.generation_client = generation_client

    def resolve_session(self, session_id: Optional[str]) -> Tuple[Session, bool]:
        """
        Load the caller's session or mint a new one.

        Returns:
            (session, is_new) where is_new means a cookie must be issued
        """
        if session_id:
            session = self.session_store.get(session_id)
            if session is not None:
                return session, False
            logger.info("Session cookie did not match a stored session", session_id=session_id)

        session = Session(id=new_session_id())
        logger.info("New session created", session_id=session.id)
        return session, True

    def build_prompt(self, session: Session, context: str) -> List[PromptMessage]:
        """One system message followed by the recent conversation window."""
        system_content = self.config.system_prompt
        if context:
            system_content += f"\n\nFAQ:\n{context}"

        prompt = [PromptMessage(role="system", content=system_content)]
        prompt.extend(
            PromptMessage(role=turn.role, content=turn.content)
            for turn in session.recent_turns(self.config.history_window)
        )
        return prompt

    def start_chat(self, message: Any, session_id: Optional[str] = None) -> ChatStream:
        """
        Handle one chat message and return the streaming reply.

        Args:
            message: Raw message from the request body
            session_id: Identifier from the session cookie, if any

        Raises:
            InvalidMessageError: If the message is not a non-blank string
            GenerationError: If the generation stream cannot be opened
        """
        if not isinstance(message, str) or not message.strip():
            raise InvalidMessageError("Message required")

        session, is_new = self.resolve_session(session_id)
        session.add_turn("user", message.strip())

        retrieval = self.retrieval_tool.retrieve(message)
        prompt = self.build_prompt(session, retrieval.context)

        logger.info(
            "Chat request received",
            session_id=session.id,
            new_session=is_new,
            message_length=len(message),
            faq_matches=len(retrieval.matches),
            prompt_messages=len(prompt)
        )

        upstream = self.generation_client.stream(prompt)
        relay = StreamRelay(session, self.session_store, self.config.session_ttl_seconds)
        return ChatStream(
            session_id=session.id,
            is_new_session=is_new,
            body=relay.relay(upstream),
            relay=relay
        )

    def get_history(self, session_id: Optional[str]) -> List[Turn]:
        """Persisted turns for a session, or an empty list."""
        if not session_id:
            return []
        session = self.session_store.get(session_id)
        return list(session.messages) if session else []
