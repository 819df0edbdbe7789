"""Description synthesizer: a short human-readable line from a CodeRabbit body.

The steps run in a fixed order: filter noise lines, cap, join, strip markup,
then fall back. Stripping markup before capping would change which lines
survive, so the order is part of the contract.
"""

from __future__ import annotations

import re

from coderabbitmcp.parsing.markers import has_marker_glyph
from coderabbitmcp.parsing.scanner import AI_PROMPT_INTRO, SUGGESTION_INTRO, TokenKind, tokenize

COMMENT_LINE_CAP = 2
SECTION_LINE_CAP = 3
FALLBACK_DESCRIPTION = "CodeRabbit suggestion"

_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_INTRO_PHRASES = (AI_PROMPT_INTRO, SUGGESTION_INTRO)
_FENCE_DELIMITERS = frozenset({TokenKind.FENCE_OPEN, TokenKind.FENCE_CLOSE})


def description_lines(text: str, *, drop_rules: bool = False) -> list[str]:
    """Lines of *text* that carry prose, in order.

    Drops blank lines, marker lines, intro phrases, tag lines and fence
    delimiters. Lines inside a fence are kept. ``---`` rules are only
    dropped when *drop_rules* is set, which review sections do.
    """
    lines: list[str] = []
    for token in tokenize(text):
        if token.kind in _FENCE_DELIMITERS:
            continue
        stripped = token.text.strip()
        if not stripped or has_marker_glyph(stripped) or stripped.startswith("<"):
            continue
        if token.intro is not None or any(phrase in stripped for phrase in _INTRO_PHRASES):
            continue
        if drop_rules and stripped.startswith("---"):
            continue
        lines.append(stripped)
    return lines


def strip_markup(text: str) -> str:
    """Remove bold delimiters and unwrap inline code spans."""
    return _INLINE_CODE_RE.sub(r"\1", text.replace("**", ""))


def synthesize(text: str, cap: int, category: str | None = None, *, drop_rules: bool = False) -> str:
    lines = description_lines(text, drop_rules=drop_rules)
    description = strip_markup(" ".join(lines[:cap])).strip()
    if description:
        return description
    return category or FALLBACK_DESCRIPTION
