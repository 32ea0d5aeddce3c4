"""
Conversation Store — In-memory map of session id → live Gemini chat.

The first search of a dialogue creates a chat and stores it here; follow-up
questions look it up by session id and keep talking to the same chat, so
Gemini sees the whole conversation.

This is NOT persistent memory — everything is lost on restart.

Eviction:
  - max_sessions: least-recently-used chat is dropped when the store is full
  - ttl_seconds:  chats idle for longer than this are dropped
  Both None → chats live for the whole process lifetime.
"""
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

from core.errors import NotFoundError


# ──────────────────────────────────────────────
# Data Structures
# ──────────────────────────────────────────────
@dataclass
class Conversation:
    """A stored chat plus bookkeeping."""
    session_id: str
    chat: Any                       # GeminiChat (or a test double)
    created_at: float
    last_used: float
    turns: int = 1
    # Serialises turns on the same chat; the SDK chat object is not thread safe
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class ConversationStore:
    """Thread-safe keyed store of conversations with optional LRU/TTL eviction."""

    def __init__(self, max_sessions: int | None = None, ttl_seconds: float | None = None,
                 clock=time.monotonic):
        if max_sessions is not None and max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._items: OrderedDict[str, Conversation] = OrderedDict()

    # ──────────────────────────────────────────
    # Core Operations
    # ──────────────────────────────────────────
    def create(self, session_id: str, chat: Any) -> Conversation:
        """Store a new chat. The id must not already be in use."""
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            if session_id in self._items:
                raise ValueError(f"Session {session_id!r} already exists")
            conversation = Conversation(session_id=session_id, chat=chat,
                                        created_at=now, last_used=now)
            self._items[session_id] = conversation
            if self.max_sessions is not None:
                while len(self._items) > self.max_sessions:
                    evicted, _ = self._items.popitem(last=False)
                    print(f"🗑️  Session {evicted} evicted (store full: {self.max_sessions})")
            return conversation

    def get(self, session_id: str) -> Conversation:
        """Look up a chat and mark it as recently used."""
        now = self._clock()
        with self._lock:
            conversation = self._items.get(session_id)
            if conversation is not None and self._is_expired(conversation, now):
                del self._items[session_id]
                conversation = None
            if conversation is None:
                raise NotFoundError("Chat session not found")
            conversation.last_used = now
            self._items.move_to_end(session_id)
            return conversation

    def evict_expired(self) -> int:
        """Drop idle chats. Returns how many were removed."""
        with self._lock:
            return self._evict_expired(self._clock())

    # ──────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────
    def _is_expired(self, conversation: Conversation, now: float) -> bool:
        return self.ttl_seconds is not None and now - conversation.last_used > self.ttl_seconds

    def _evict_expired(self, now: float) -> int:
        if self.ttl_seconds is None:
            return 0
        expired = [sid for sid, c in self._items.items() if self._is_expired(c, now)]
        for sid in expired:
            del self._items[sid]
        return len(expired)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            conversation = self._items.get(session_id)
            return conversation is not None and not self._is_expired(conversation, self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
