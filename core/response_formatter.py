"""
Response Formatter — Turns a raw Gemini answer into render-ready output.

Two independent pure functions:
  - text_to_markup:  semi-structured prose → markdown → HTML
  - extract_sources: grounding chunks + supports → deduplicated Source list

Why line classification:
  Gemini often writes ad hoc section labels ("Overview: ...") instead of
  markdown headings. We recover the structure line by line:

    "Overview: text"   → "## Overview text"    (section label, any line start)
    "• item"           → "* item"

  Sub-section promotion ("### Label", never before a digit) runs after the
  section pass, on lines it left alone. Labels never span lines here, so the
  section pass already claims every label line it could match.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable

from markdown_it import MarkdownIt

import config


# ──────────────────────────────────────────────
# Line Classification
# ──────────────────────────────────────────────
# A letter, then at least one more letter/space/tab, then a colon
_LABEL_RE = re.compile(r"^([A-Za-z][A-Za-z \t]+):(.*)$")
_BULLET_RE = re.compile(r"^[•●○][ \t]*")
_LIST_OR_HEADING_PREFIXES = ("#", "*", "-")

HEADING_SECTION = 2

# GFM-like renderer, single newlines → <br>
_renderer = MarkdownIt(config.MARKDOWN_PRESET, config.MARKDOWN_OPTIONS)


def classify_label(line: str) -> int | None:
    """
    Decide whether a line starts with a "Label:" section label.

    Returns:
        2 when the line starts with letters/spaces followed by a colon,
        whatever comes after the colon; None otherwise.
    """
    return HEADING_SECTION if _LABEL_RE.match(line) else None


def promote_section(line: str) -> str:
    """Rewrite `Label:<rest>` as `## Label<rest>`, keeping the text after the colon."""
    match = _LABEL_RE.match(line)
    if not match:
        return line
    label, rest = match.groups()
    return f"## {label}{rest}"


def promote_subsection(line: str) -> str:
    """Rewrite `Label:<rest>` as `### Label<rest>`, unless a digit follows the colon."""
    match = _LABEL_RE.match(line)
    if not match:
        return line
    label, rest = match.groups()
    if rest[:1].isdigit():
        # Times and ratios ("Time:10") stay as written
        return line
    return f"### {label}{rest}"


def _rewrite_line(line: str) -> str:
    line = promote_section(line)
    line = promote_subsection(line)
    return _BULLET_RE.sub("* ", line, count=1)


def split_paragraphs(text: str) -> list[str]:
    """Split on blank-line boundaries, dropping empty paragraphs."""
    return [p for p in text.split("\n\n") if p.strip()]


def to_markdown(raw: str) -> str:
    """Recover headings/bullets and paragraph breaks (no HTML rendering)."""
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(_rewrite_line(line) for line in text.split("\n"))

    paragraphs = []
    for p in split_paragraphs(text):
        if p.startswith(_LIST_OR_HEADING_PREFIXES):
            paragraphs.append(p)
        else:
            paragraphs.append(f"{p}\n")
    return "\n\n".join(paragraphs)


def text_to_markup(raw: str) -> str:
    """
    Convert raw generated text into HTML.

    Args:
        raw: Answer text as returned by Gemini

    Returns:
        HTML string (headings, lists, tables, paragraphs; single newlines → <br />)
    """
    if not raw:
        return ""
    return _renderer.render(to_markdown(raw))


# ──────────────────────────────────────────────
# Grounding → Sources
# ──────────────────────────────────────────────
@dataclass
class CitationChunk:
    """One web document Gemini grounded its answer on."""
    index: int
    url: str | None = None
    title: str | None = None


@dataclass
class CitationSupport:
    """A span of the answer attributed to one or more chunks."""
    text: str
    chunk_indices: frozenset[int] = field(default_factory=frozenset)


@dataclass
class Source:
    """
    One cited web page. `url` is "" when Gemini only gave a title; callers
    rendering links should treat such sources as plain text.
    """
    url: str
    title: str
    snippet: str = ""

    def to_dict(self) -> dict:
        return {"title": self.title, "url": self.url, "snippet": self.snippet}


def extract_sources(
    chunks: Iterable[CitationChunk],
    supports: Iterable[CitationSupport],
) -> list[Source]:
    """
    Build the deduplicated source list for one answer.

    Order is first-seen chunk order. A chunk whose url was already emitted is
    dropped entirely — its supports do NOT get merged into the earlier snippet.
    The snippet joins the text of every matching support, empty ones included.
    """
    supports = list(supports)
    seen: set[str] = set()
    sources: list[Source] = []

    for chunk in sorted(chunks, key=lambda c: c.index):
        if not chunk.url and not chunk.title:
            continue
        key = chunk.url or chunk.title
        if key in seen:
            continue
        seen.add(key)

        snippet = " ".join(
            s.text for s in supports
            if chunk.index in s.chunk_indices
        )
        sources.append(Source(
            url=chunk.url or "",
            title=chunk.title or chunk.url,
            snippet=snippet,
        ))

    return sources
