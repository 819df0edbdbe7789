"""Comment parser: one CodeRabbit inline comment → ``ParsedComment``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from coderabbitmcp.errors import NotAuthorizedError
from coderabbitmcp.models import LineRange, ParsedComment
from coderabbitmcp.parsing import blocks
from coderabbitmcp.parsing.descriptions import COMMENT_LINE_CAP, synthesize
from coderabbitmcp.parsing.markers import classify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from coderabbitmcp.identity import BotIdentity
    from coderabbitmcp.models import RawComment

# Unverified: these acknowledgements are usually written by humans replying
# to the bot, so on the bot's own comment body the flag is rarely set.
RESOLVED_PHRASES: tuple[str, ...] = ("✅ Addressed", "✅ Fixed", "✅ Resolved")


def line_range(raw: RawComment) -> LineRange:
    """Anchored span of *raw*, passed through as the platform reports it.

    No reordering happens when ``start_line`` is greater than ``line``.
    """
    if raw.start_line and raw.line:
        return LineRange(start=raw.start_line, end=raw.line)
    if raw.line:
        return LineRange(start=raw.line, end=raw.line)
    return LineRange()


def is_resolved(body: str) -> bool:
    return any(phrase in body for phrase in RESOLVED_PHRASES)


def parse_comment(raw: RawComment, identity: BotIdentity, related_ids: Iterable[int] = ()) -> ParsedComment:
    """Parse a single inline comment.

    Raises:
        NotAuthorizedError: If the comment was not written by the bot.
    """
    if not identity.identify(raw.author):
        msg = f"Comment {raw.id} is not from CodeRabbit AI (author: {raw.author})"
        raise NotAuthorizedError(msg)

    category, severity = classify(raw.body)
    return ParsedComment(
        severity=severity,
        category=category,
        description=synthesize(raw.body, COMMENT_LINE_CAP),
        ai_prompt=blocks.ai_prompt(raw.body),
        committable_suggestion=blocks.committable_suggestion(raw.body),
        line_range=line_range(raw),
        is_resolved=is_resolved(raw.body),
        related_comment_ids=list(related_ids),
    )
