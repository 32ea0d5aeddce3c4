"""
Central configuration for the search service.
Edit this file to change session limits, rendering, or server settings.
Secrets and model settings live in core/config.py (loaded from .env).
"""
import os

# ──────────────────────────────────────────────
# Paths
# ──────────────────────────────────────────────
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ──────────────────────────────────────────────
# Conversation sessions (in-memory, lost on restart)
# ──────────────────────────────────────────────
# Oldest-used chat is dropped once this many are held. None = unbounded.
SESSION_MAX_COUNT = 500
# Chats idle longer than this are dropped. None = never expire.
SESSION_TTL_SECONDS = 60 * 60
SESSION_ID_BYTES = 9   # secrets.token_urlsafe(9) → 12-char id

# ──────────────────────────────────────────────
# Key rotation
# ──────────────────────────────────────────────
# Seconds a key is skipped after the upstream rejects it.
# 0 = plain round-robin (a failed key is still handed out on its turn).
KEY_FAILURE_COOLDOWN = 0.0

# ──────────────────────────────────────────────
# Response rendering (markdown-it-py)
# ──────────────────────────────────────────────
# gfm-like: CommonMark + tables, strikethrough, autolinks (needs linkify-it-py)
MARKDOWN_PRESET = "gfm-like"
# breaks: single newlines become <br> (soft breaks rendered as hard breaks)
# html: raw HTML in the answer is escaped, not passed through
MARKDOWN_OPTIONS = {"breaks": True, "html": False}

# ──────────────────────────────────────────────
# Web server
# ──────────────────────────────────────────────
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
AUTH_COOKIE_NAME = "sessionId"
AUTH_COOKIE_MAX_AGE = 24 * 60 * 60   # 24 hours
