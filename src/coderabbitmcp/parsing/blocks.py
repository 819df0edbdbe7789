"""Block extractor: fenced regions inside CodeRabbit comment and review bodies.

Two kinds are led by an introductory phrase and appear at most once per
finding (AI prompt, committable suggestion). The other two are plain fenced
blocks that may repeat (diff, language-tagged code).
"""

from __future__ import annotations

from coderabbitmcp.parsing.scanner import Intro, Token, TokenKind, fenced_blocks, read_fence, tokenize

CODE_LANGUAGES = frozenset({"javascript", "typescript", "python", "java", "go", "rust", "cpp", "c"})

_AI_PROMPT_FENCE = ""
_SUGGESTION_FENCE = "suggestion"
_DIFF_FENCE = "diff"


def _fence_after_intro(tokens: list[Token], intro_index: int, fence_info: str) -> str | None:
    """Return the content of the fence that belongs to the intro at *intro_index*.

    The fence must open before the collapsible section closes and before
    another intro phrase starts. Fences of other kinds in between are skipped
    whole. A missing or unterminated fence yields ``None``.
    """
    i = intro_index + 1
    while i < len(tokens):
        token = tokens[i]
        if token.kind is TokenKind.FENCE_OPEN:
            block = read_fence(tokens, i)
            if not block.closed:
                return None
            if block.info == fence_info:
                return block.content.strip() or None
            i = block.end_index + 1
            continue
        if token.closes_section or token.intro is not None:
            return None
        i += 1
    return None


def _intro_blocks(text: str, intro: Intro, fence_info: str) -> list[str]:
    tokens = tokenize(text)
    found: list[str] = []
    for i, token in enumerate(tokens):
        if token.intro is not intro:
            continue
        content = _fence_after_intro(tokens, i, fence_info)
        if content is not None:
            found.append(content)
    return found


def ai_prompt(text: str) -> str | None:
    """Content of the first well-formed 'Prompt for AI Agents' block."""
    blocks = _intro_blocks(text, Intro.AI_PROMPT, _AI_PROMPT_FENCE)
    return blocks[0] if blocks else None


def committable_suggestions(text: str) -> list[str]:
    """Contents of every well-formed 'Committable suggestion' block."""
    return _intro_blocks(text, Intro.SUGGESTION, _SUGGESTION_FENCE)


def committable_suggestion(text: str) -> str | None:
    """Content of the first well-formed 'Committable suggestion' block."""
    blocks = committable_suggestions(text)
    return blocks[0] if blocks else None


def diff_blocks(text: str) -> list[str]:
    """Every closed ``diff`` fence, in document order."""
    return [b.content.strip() for b in fenced_blocks(tokenize(text)) if b.closed and b.info == _DIFF_FENCE]


def code_blocks(text: str, languages: frozenset[str] = CODE_LANGUAGES) -> list[str]:
    """Every closed fence tagged with one of *languages*, in document order."""
    return [b.content.strip() for b in fenced_blocks(tokenize(text)) if b.closed and b.info in languages]


def fix_examples(text: str) -> list[str]:
    """Suggestions, then diffs, then language-tagged code blocks.

    Each group is in document order, but the result is grouped by kind, so a
    diff that precedes a suggestion in *text* still comes after it here.
    """
    return [*committable_suggestions(text), *diff_blocks(text), *code_blocks(text)]
