"""Review parser: a whole CodeRabbit review body → ``ParsedReview``."""

from __future__ import annotations

from coderabbitmcp.models import ParsedReview
from coderabbitmcp.parsing import metadata
from coderabbitmcp.parsing.sections import walk_detailed, walk_summary


def parse_review(body: str, *, detailed: bool = True) -> ParsedReview:
    """Parse a review body. Never raises; missing pieces fall back to defaults.

    Only call this for bodies authored by the bot; filtering by author is
    the caller's job.
    """
    entries = walk_detailed(body) if detailed else walk_summary(body)
    return ParsedReview(
        actionable_comments=metadata.actionable_count(body),
        duplicate_comments=metadata.duplicate_count(body),
        nitpick_comments=metadata.nitpick_count(body),
        summary=metadata.summary(body),
        entries=entries,
        files_reviewed=metadata.files_reviewed(body),
        configuration_used=metadata.configuration_used(body),
        review_profile=metadata.review_profile(body),
    )
