"""Correlation engine: comments near each other in the same file."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from coderabbitmcp.models import RawComment

DEFAULT_PROXIMITY_WINDOW = 10
DEFAULT_MISSING_ANCHOR_LINE = 0


def _anchor(comment: RawComment, missing_anchor: int) -> int:
    return comment.line if comment.line is not None else missing_anchor


def find_related(
    target: RawComment,
    comments: Iterable[RawComment],
    *,
    window: int = DEFAULT_PROXIMITY_WINDOW,
    missing_anchor: int = DEFAULT_MISSING_ANCHOR_LINE,
) -> list[int]:
    """IDs of the other comments on ``target.path`` within *window* lines of it.

    The distance check is inclusive and symmetric. Unanchored comments count
    as sitting on line *missing_anchor*. Input order is preserved.
    """
    target_line = _anchor(target, missing_anchor)
    return [
        comment.id
        for comment in comments
        if comment.id != target.id
        and comment.path == target.path
        and abs(_anchor(comment, missing_anchor) - target_line) <= window
    ]
