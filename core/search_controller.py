"""
Search Controller — Orchestrator for grounded search with follow-ups.

Coordinates one user turn end to end:
  1. Validate the query
  2. Draw the next API key (KeyManager) and open a Gemini chat   [new search]
     or look up the existing chat (ConversationStore)           [follow-up]
  3. Send the turn to Gemini with Google Search grounding
  4. Format the answer (text_to_markup) and collect sources (extract_sources)
  5. Store the chat under a fresh session id                    [new search]

Design Principles:
  - Key acquisition and session lookup finish BEFORE the slow upstream call
  - No retries: an upstream failure surfaces immediately as UpstreamError
  - A failed follow-up keeps its session; the caller may retry the same id
  - The drawn key is never handed back, even when the call fails
"""
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable

import config
from core.config import settings
from core.conversation_store import ConversationStore
from core.errors import UpstreamError, ValidationError
from core.key_manager import KeyManager, mask_key
from core.llm_generator import UpstreamReply, start_chat
from core.response_formatter import Source, extract_sources, text_to_markup


# ──────────────────────────────────────────────
# Result Data Structures
# ──────────────────────────────────────────────
@dataclass
class FollowUpResult:
    """Formatted answer for one turn."""
    summary: str                                   # HTML
    sources: list[Source] = field(default_factory=list)
    raw_text: str = ""                             # unformatted Gemini text

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "sources": [s.to_dict() for s in self.sources],
        }


@dataclass
class SearchResult(FollowUpResult):
    """Formatted answer for the first turn, plus the id to continue it."""
    session_id: str = ""

    def to_dict(self) -> dict:
        return {"sessionId": self.session_id, **super().to_dict()}


def new_session_id() -> str:
    return secrets.token_urlsafe(config.SESSION_ID_BYTES)


def _require_query(query, message: str = "Query parameter 'q' is required") -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValidationError(message)
    return query


class SearchController:
    """
    Entry point for search and follow-up requests.

    Usage:
        controller = build_controller()
        first = controller.new_search("latest fusion research")
        more = controller.follow_up(first.session_id, "who funds it?")
    """

    def __init__(
        self,
        key_manager: KeyManager,
        store: ConversationStore | None = None,
        chat_factory: Callable = start_chat,
        id_factory: Callable[[], str] = new_session_id,
    ):
        self.key_manager = key_manager
        self.store = store if store is not None else ConversationStore()
        self.chat_factory = chat_factory
        self.id_factory = id_factory

    # ──────────────────────────────────────────
    # New Search (first turn)
    # ──────────────────────────────────────────
    def new_search(self, query: str) -> SearchResult:
        _require_query(query)
        print(f"\n🔎 Search: {query[:80]}")

        api_key = self.key_manager.get_key()
        t0 = time.time()
        try:
            chat = self.chat_factory(api_key)
            reply = chat.send_message(query)
        except UpstreamError as e:
            print(f"   ❌ Search failed with key {mask_key(api_key)}: {e.message}")
            self.key_manager.report_failure(api_key)
            raise

        summary, sources = self._format(reply)
        session_id = self._unused_session_id()
        self.store.create(session_id, chat)

        print(f"   ✅ {len(sources)} source(s), session {session_id} ({time.time() - t0:.2f}s)")
        return SearchResult(
            summary=summary,
            sources=sources,
            raw_text=reply.text,
            session_id=session_id,
        )

    # ──────────────────────────────────────────
    # Follow-up (later turns on the same chat)
    # ──────────────────────────────────────────
    def follow_up(self, session_id: str, query: str) -> FollowUpResult:
        conversation = self.store.get(session_id)
        _require_query(query, "Query is required")
        print(f"\n💬 Follow-up [{session_id}]: {query[:80]}")

        t0 = time.time()
        with conversation.lock:
            try:
                reply = conversation.chat.send_message(query)
            except UpstreamError as e:
                print(f"   ❌ Follow-up failed: {e.message}")
                raise
            conversation.turns += 1

        summary, sources = self._format(reply)
        print(f"   ✅ {len(sources)} source(s), turn {conversation.turns} ({time.time() - t0:.2f}s)")
        return FollowUpResult(summary=summary, sources=sources, raw_text=reply.text)

    # ──────────────────────────────────────────
    # Key status (for /api/keys)
    # ──────────────────────────────────────────
    def set_custom_keys(self, keys: list[str]) -> dict:
        self.key_manager.set_custom_keys(keys)
        return self.key_manager.status()

    def clear_custom_keys(self) -> dict:
        self.key_manager.clear_custom_keys()
        return self.key_manager.status()

    def key_status(self) -> dict:
        return self.key_manager.status()

    # ──────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────
    @staticmethod
    def _format(reply: UpstreamReply) -> tuple[str, list[Source]]:
        try:
            return text_to_markup(reply.text), extract_sources(reply.chunks, reply.supports)
        except Exception as e:
            # A reply we cannot render counts as a malformed upstream response
            raise UpstreamError(f"Malformed response: {e}") from e

    def _unused_session_id(self) -> str:
        session_id = self.id_factory()
        while session_id in self.store:
            session_id = self.id_factory()
        return session_id


def build_controller() -> SearchController:
    """Wire the controller from .env settings and config.py (raises ConfigurationError)."""
    key_manager = KeyManager(
        settings.GOOGLE_API_KEYS,
        "Gemini",
        failure_cooldown=config.KEY_FAILURE_COOLDOWN,
    )
    store = ConversationStore(
        max_sessions=config.SESSION_MAX_COUNT,
        ttl_seconds=config.SESSION_TTL_SECONDS,
    )
    return SearchController(key_manager, store)
