"""
FAQ knowledge base and index seeding.

The dataset below is embedded once (question and answer together) and
upserted into the Qdrant collection that chat retrieval queries. Run
``python seed.py`` or call ``POST /api/seed`` after deployment.
"""

import sys
from typing import List, Sequence, Tuple

from config import get_config
from connection import Connections
from models import FaqEntry
from tools import RetrievalTool, RetrievalError
from logger import get_logger

logger = get_logger(__name__)


class SeedError(Exception):
    """The FAQ index could not be populated."""
    pass


FAQS: List[Tuple[str, str]] = [
    # ==================== Getting started ====================
    (
        "How do I add the chat widget to my website?",
        "Add the widget script tag to your page just before the closing body tag: "
        "<script src=\"https://your-deployment.example.com/widget.js\" defer></script>. "
        "The widget loads its stylesheet automatically and renders a chat button in the "
        "bottom-right corner.",
    ),
    (
        "Does the widget work with React, Vue or Next.js?",
        "Yes. The widget is a standalone script with no framework dependency, so it works "
        "with any site. In single-page apps, include the script once in your root layout.",
    ),
    (
        "Can I change the colours and position of the widget?",
        "Yes. Set data-primary-color and data-position (bottom-right or bottom-left) "
        "attributes on the script tag, or override the .chatbot-* CSS classes in your own "
        "stylesheet.",
    ),

    # ==================== Conversations ====================
    (
        "Does the assistant remember earlier messages?",
        "Yes. Each browser gets a session cookie and the assistant sees the last ten "
        "messages of the conversation when it answers, so follow-up questions work "
        "naturally.",
    ),
    (
        "How long is my chat history kept?",
        "Conversations are stored for 30 days after the last reply. After that the session "
        "expires automatically and a new conversation starts.",
    ),
    (
        "Can I see my previous messages after reloading the page?",
        "Yes. The widget restores the conversation from the server when it loads, as long "
        "as your browser keeps the session cookie and the 30-day retention has not passed.",
    ),
    (
        "How do I start a new conversation?",
        "Clear the chatbot_session cookie for the site, or open the page in a private "
        "window. The next message you send starts a fresh session.",
    ),

    # ==================== Answers ====================
    (
        "Where do the assistant's answers come from?",
        "The assistant searches this FAQ knowledge base for the three entries most similar "
        "to your question and uses them as context for a language model. If nothing "
        "relevant is found it answers from general knowledge and says when it is unsure.",
    ),
    (
        "Why did the assistant say it doesn't know?",
        "The assistant is instructed to admit when the FAQ context does not cover a "
        "question instead of guessing. Try rephrasing, or contact support directly.",
    ),
    (
        "How do I update the FAQ answers?",
        "Edit the FAQ list in the service's seed module and run the seed operation again. "
        "Entries keep stable ids, so re-seeding replaces existing answers instead of "
        "duplicating them.",
    ),

    # ==================== Privacy & support ====================
    (
        "Is my conversation data shared with third parties?",
        "Messages are sent to the hosted language model and embedding services only to "
        "generate answers. Conversation history is stored in the service's own session "
        "store and is never sold or used for advertising.",
    ),
    (
        "Does the widget use cookies?",
        "The widget sets a single HttpOnly cookie, chatbot_session, that identifies your "
        "conversation. It contains no personal data and expires after 30 days.",
    ),
    (
        "How can I contact a human?",
        "Ask the assistant for a human and it will share the support contact details, or "
        "use the contact form on this website. Support replies within one business day.",
    ),
]


def build_faq_entries(faqs: Sequence[Tuple[str, str]] = FAQS) -> List[FaqEntry]:
    """Wrap the raw pairs with stable ids (``faq-1``, ``faq-2``, ...)."""
    return [
        FaqEntry(id=f"faq-{i}", question=question, answer=answer)
        for i, (question, answer) in enumerate(faqs, start=1)
    ]


def seed_faq_index(retrieval_tool: RetrievalTool, faqs: Sequence[Tuple[str, str]] = FAQS) -> int:
    """
    Embed every FAQ and upsert it into the vector index.

    Returns:
        Number of entries stored

    Raises:
        SeedError: If embedding or the upsert fails
    """
    entries = build_faq_entries(faqs)
    if not entries:
        return 0

    try:
        vectors = retrieval_tool.embed_texts(
            [entry.embedding_text for entry in entries],
            input_type="search_document"
        )
        if len(vectors) != len(entries):
            raise SeedError(f"Expected {len(entries)} embeddings, got {len(vectors)}")

        for entry, vector in zip(entries, vectors):
            entry.embedding = vector

        retrieval_tool.ensure_collection(vector_size=len(vectors[0]))
        count = retrieval_tool.upsert_entries(entries)
    except RetrievalError as e:
        raise SeedError(str(e)) from e

    logger.info("FAQ index seeded", count=count, collection=retrieval_tool.collection_name)
    return count


def main() -> int:
    try:
        config = get_config()
    except ValueError as e:
        logger.error(str(e))
        return 1

    connections = Connections(config)
    tool = RetrievalTool(
        connections,
        collection_name=config.qdrant_collection_name,
        embedding_model=config.embedding_model,
        top_k=config.retrieval_top_k
    )
    try:
        count = seed_faq_index(tool)
    except SeedError as e:
        logger.error(f"Seeding failed: {e}")
        return 1
    finally:
        connections.close()

    print(f"Seeded {count} FAQ entries into '{config.qdrant_collection_name}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
