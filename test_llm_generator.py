"""
Test Suite — Gemini response unpacking and error wrapping.

SDK responses are replaced by SimpleNamespace objects with the same
attribute shape, so no API keys or network are needed.

Usage:
  pytest test_llm_generator.py
"""
from types import SimpleNamespace

import pytest
from google.genai import errors

from core.errors import UpstreamError
from core.llm_generator import GeminiChat, UpstreamReply, parse_response
from core.response_formatter import CitationChunk, CitationSupport


# ══════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════
def web_chunk(uri=None, title=None):
    return SimpleNamespace(web=SimpleNamespace(uri=uri, title=title))


def support(text, indices):
    return SimpleNamespace(
        segment=SimpleNamespace(text=text),
        grounding_chunk_indices=indices,
    )


def response(text="answer", metadata=None, candidates=True):
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(grounding_metadata=metadata)] if candidates else None,
    )


def metadata(chunks=None, supports=None, queries=None):
    return SimpleNamespace(
        grounding_chunks=chunks,
        grounding_supports=supports,
        web_search_queries=queries,
    )


class RaisingChat:
    def __init__(self, exc):
        self.exc = exc

    def send_message(self, query):
        raise self.exc


class ReplyingChat:
    def __init__(self, reply):
        self.reply = reply
        self.sent = []

    def send_message(self, query):
        self.sent.append(query)
        return self.reply


# ══════════════════════════════════════════════
# parse_response
# ══════════════════════════════════════════════
def test_chunks_keep_their_position_as_index():
    reply = parse_response(response(metadata=metadata(
        chunks=[web_chunk("https://a", "A"), web_chunk("https://b", "B")],
        supports=[support("cited", [1])],
        queries=["fusion"],
    )))
    assert reply.text == "answer"
    assert reply.chunks == [
        CitationChunk(0, url="https://a", title="A"),
        CitationChunk(1, url="https://b", title="B"),
    ]
    assert reply.supports == [CitationSupport("cited", frozenset({1}))]
    assert reply.search_queries == ["fusion"]


def test_chunk_without_web_has_no_url_or_title():
    reply = parse_response(response(metadata=metadata(
        chunks=[SimpleNamespace(web=None), web_chunk("https://b", "B")],
    )))
    assert reply.chunks[0] == CitationChunk(0)
    assert reply.chunks[1].index == 1


def test_support_without_segment_has_empty_text():
    reply = parse_response(response(metadata=metadata(
        supports=[
            SimpleNamespace(segment=None, grounding_chunk_indices=[0]),
            SimpleNamespace(segment=SimpleNamespace(text=None), grounding_chunk_indices=None),
        ],
    )))
    assert reply.supports == [
        CitationSupport("", frozenset({0})),
        CitationSupport("", frozenset()),
    ]


def test_missing_grounding_metadata_gives_text_only():
    reply = parse_response(response(text="plain", metadata=None))
    assert reply == UpstreamReply(text="plain")


def test_no_candidates_gives_text_only():
    reply = parse_response(response(text="plain", candidates=False))
    assert reply.chunks == []
    assert reply.supports == []


def test_missing_text_becomes_empty_string():
    reply = parse_response(response(text=None, metadata=metadata()))
    assert reply.text == ""
    assert reply.chunks == []
    assert reply.search_queries == []


# ══════════════════════════════════════════════
# GeminiChat.send_message
# ══════════════════════════════════════════════
def test_send_message_returns_parsed_reply():
    chat = ReplyingChat(response(text="hi", metadata=metadata(
        chunks=[web_chunk("https://a", "A")],
    )))
    reply = GeminiChat(chat).send_message("hello")
    assert chat.sent == ["hello"]
    assert reply.text == "hi"
    assert reply.chunks == [CitationChunk(0, url="https://a", title="A")]


def test_api_error_is_wrapped_with_its_message():
    api_error = errors.APIError(429, {"error": {
        "code": 429,
        "message": "quota exceeded",
        "status": "RESOURCE_EXHAUSTED",
    }})
    with pytest.raises(UpstreamError) as exc_info:
        GeminiChat(RaisingChat(api_error)).send_message("q")
    assert "quota exceeded" in exc_info.value.message
    assert exc_info.value.__cause__ is api_error


def test_other_exception_is_wrapped():
    with pytest.raises(UpstreamError) as exc_info:
        GeminiChat(RaisingChat(ConnectionError("connection reset"))).send_message("q")
    assert exc_info.value.message == "connection reset"


def test_exception_without_message_uses_default():
    with pytest.raises(UpstreamError) as exc_info:
        GeminiChat(RaisingChat(TimeoutError())).send_message("q")
    assert exc_info.value.message == UpstreamError.DEFAULT_MESSAGE


def test_unparseable_response_is_wrapped():
    broken = SimpleNamespace(text="x", candidates=[SimpleNamespace()])
    with pytest.raises(UpstreamError):
        GeminiChat(ReplyingChat(broken)).send_message("q")


# ══════════════════════════════════════════════
# CLI Runner
# ══════════════════════════════════════════════
def main():
    raise SystemExit(pytest.main([__file__, "-q"]))


if __name__ == "__main__":
    main()
