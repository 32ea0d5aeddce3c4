"""
LLM Generator — Grounded chat with Gemini + Google Search.

Responsibilities:
  - Create a Gemini chat bound to ONE API key (the key cannot change later)
  - Send a turn and unpack text + grounding metadata into plain dataclasses
  - Wrap every SDK/network failure into UpstreamError

This module ONLY talks to Gemini. Formatting is handled by response_formatter.py.
"""
from dataclasses import dataclass, field

from google import genai
from google.genai import errors, types

from core.config import settings
from core.errors import UpstreamError
from core.response_formatter import CitationChunk, CitationSupport


# ──────────────────────────────────────────────
# Result Data Structure
# ──────────────────────────────────────────────
@dataclass
class UpstreamReply:
    """One answer from Gemini, detached from SDK types."""
    text: str
    chunks: list[CitationChunk] = field(default_factory=list)
    supports: list[CitationSupport] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)


def _build_config() -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        temperature=settings.GEMINI_TEMPERATURE,
        top_p=settings.GEMINI_TOP_P,
        top_k=settings.GEMINI_TOP_K,
        max_output_tokens=settings.GEMINI_MAX_TOKENS,
        tools=[types.Tool(google_search=types.GoogleSearch())],
    )


def parse_response(response) -> UpstreamReply:
    """
    Unpack a GenerateContentResponse.

    Grounding metadata lives on the first candidate:
      grounding_chunks[i].web.{uri,title}
      grounding_supports[j].segment.text + grounding_chunk_indices
    """
    text = response.text or ""
    candidates = response.candidates or []
    metadata = candidates[0].grounding_metadata if candidates else None
    if metadata is None:
        return UpstreamReply(text=text)

    chunks = []
    for index, chunk in enumerate(metadata.grounding_chunks or []):
        web = chunk.web
        chunks.append(CitationChunk(
            index=index,
            url=web.uri if web else None,
            title=web.title if web else None,
        ))

    supports = []
    for support in metadata.grounding_supports or []:
        segment = support.segment
        supports.append(CitationSupport(
            text=(segment.text if segment else None) or "",
            chunk_indices=frozenset(support.grounding_chunk_indices or []),
        ))

    return UpstreamReply(
        text=text,
        chunks=chunks,
        supports=supports,
        search_queries=list(metadata.web_search_queries or []),
    )


class GeminiChat:
    """A multi-turn Gemini chat with Google Search grounding enabled."""

    def __init__(self, chat):
        self._chat = chat

    def send_message(self, query: str) -> UpstreamReply:
        """Send one turn. Raises UpstreamError on any failure."""
        try:
            response = self._chat.send_message(query)
            return parse_response(response)
        except errors.APIError as e:
            raise UpstreamError(e.message or str(e)) from e
        except Exception as e:
            raise UpstreamError(str(e) or None) from e


def start_chat(api_key: str) -> GeminiChat:
    """Create a Gemini client with the given key and open a new chat."""
    try:
        client = genai.Client(api_key=api_key)
        chat = client.chats.create(model=settings.GEMINI_MODEL, config=_build_config())
    except Exception as e:
        raise UpstreamError(str(e) or None) from e
    return GeminiChat(chat)
