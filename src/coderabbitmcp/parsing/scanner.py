"""Line scanner over the delimiter vocabulary CodeRabbit emits.

CodeRabbit bodies are prose interleaved with ``<details>`` sections, fixed
introductory phrases and fenced code blocks. Instead of running unanchored
regexes over the whole body, the text is cut into a flat list of line tokens
that track fence state, so a phrase or tag inside a code block is never
mistaken for structure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

DETAILS_OPEN = "<details>"
DETAILS_CLOSE = "</details>"
BLOCKQUOTE_CLOSE = "</blockquote>"

AI_PROMPT_INTRO = "🤖 Prompt for AI Agents"
SUGGESTION_INTRO = "📝 Committable suggestion"

_SUMMARY_RE = re.compile(r"<summary>(.*?)</summary>", re.DOTALL)

# Up to three spaces of indentation, then a run of three or more backticks.
_FENCE_OPEN_RE = re.compile(r"^\s{0,3}(`{3,})\s*([^`\s]*)[^`]*$")
_FENCE_CLOSE_RE = re.compile(r"^\s{0,3}(`{3,})\s*$")


class Intro(StrEnum):
    """Introductory phrases that announce a fenced block."""

    AI_PROMPT = "ai_prompt"
    SUGGESTION = "suggestion"


_INTRO_PHRASES: dict[Intro, str] = {
    Intro.AI_PROMPT: AI_PROMPT_INTRO,
    Intro.SUGGESTION: SUGGESTION_INTRO,
}


class TokenKind(StrEnum):
    TEXT = "text"
    FENCE_OPEN = "fence_open"
    FENCE_LINE = "fence_line"
    FENCE_CLOSE = "fence_close"


@dataclass(frozen=True, slots=True)
class Token:
    """A single scanned line.

    ``info`` is the fence tag for ``FENCE_OPEN`` tokens (``""`` for a plain
    fence). ``intro`` and ``closes_section`` are only set outside fences.
    """

    kind: TokenKind
    text: str
    info: str = ""
    intro: Intro | None = None
    closes_section: bool = False


@dataclass(frozen=True, slots=True)
class FencedBlock:
    """A fenced region found in a token stream."""

    info: str
    content: str
    open_index: int
    end_index: int
    closed: bool


def tokenize(text: str) -> list[Token]:
    """Scan *text* into line tokens, tracking fence open/close state."""
    tokens: list[Token] = []
    fence: str | None = None

    for line in text.split("\n"):
        if fence is not None:
            close = _FENCE_CLOSE_RE.match(line)
            if close and len(close.group(1)) >= len(fence):
                tokens.append(Token(TokenKind.FENCE_CLOSE, line))
                fence = None
            else:
                tokens.append(Token(TokenKind.FENCE_LINE, line))
            continue

        opening = _FENCE_OPEN_RE.match(line)
        if opening:
            fence = opening.group(1)
            tokens.append(Token(TokenKind.FENCE_OPEN, line, info=opening.group(2).lower()))
            continue

        tokens.append(
            Token(
                TokenKind.TEXT,
                line,
                intro=_detect_intro(line),
                closes_section=DETAILS_CLOSE in line,
            )
        )

    return tokens


def _detect_intro(line: str) -> Intro | None:
    for intro, phrase in _INTRO_PHRASES.items():
        if phrase in line:
            return intro
    return None


def read_fence(tokens: list[Token], open_index: int) -> FencedBlock:
    """Collect the body of the fence opened at *open_index*."""
    opener = tokens[open_index]
    lines: list[str] = []
    for index in range(open_index + 1, len(tokens)):
        token = tokens[index]
        if token.kind is TokenKind.FENCE_CLOSE:
            return FencedBlock(opener.info, "\n".join(lines), open_index, index, closed=True)
        lines.append(token.text)
    return FencedBlock(opener.info, "\n".join(lines), open_index, len(tokens), closed=False)


def fenced_blocks(tokens: list[Token]) -> list[FencedBlock]:
    """Every fenced block in document order, including unterminated ones."""
    return [read_fence(tokens, i) for i, token in enumerate(tokens) if token.kind is TokenKind.FENCE_OPEN]


def first_summary(text: str) -> str | None:
    """Return the stripped text of the first ``<summary>`` tag, if any."""
    match = _SUMMARY_RE.search(text)
    return match.group(1).strip() if match else None
