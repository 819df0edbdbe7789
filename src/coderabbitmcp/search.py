"""Comment locator: find a review comment by ID across recent pull requests.

GitHub's review comment endpoints are scoped to a pull request, so a bare
comment ID has to be searched for. The search walks the most recently
updated PRs one at a time and stops at the first match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from coderabbitmcp.errors import RemoteFailureError

if TYPE_CHECKING:
    from coderabbitmcp.models import PullRequestSummary, RawComment
    from coderabbitmcp.port import RepositoryPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocatedComment:
    """A comment together with the PR it lives on and that PR's other comments."""

    comment: RawComment
    pull_request: PullRequestSummary
    pr_comments: list[RawComment]


async def locate_comment(
    port: RepositoryPort,
    owner: str,
    repo: str,
    comment_id: int,
    *,
    max_pull_requests: int = 20,
) -> LocatedComment | None:
    """Search the *max_pull_requests* most recently updated PRs for *comment_id*.

    Returns ``None`` when no scanned PR has the comment. A PR whose comments
    cannot be fetched is logged and skipped.

    Raises:
        RemoteFailureError: If the pull request listing itself fails.
    """
    pulls = await port.list_pull_requests(
        owner,
        repo,
        state="all",
        sort="updated",
        direction="desc",
        per_page=max_pull_requests,
    )

    for pull in pulls[:max_pull_requests]:
        try:
            comments = await port.fetch_comments(owner, repo, pull.number)
        except RemoteFailureError as exc:
            logger.warning("Skipping PR #%d while looking for comment %d: %s", pull.number, comment_id, exc)
            continue

        for comment in comments:
            if comment.id == comment_id:
                logger.debug("Found comment %d on PR #%d", comment_id, pull.number)
                return LocatedComment(comment, pull, comments)

    logger.debug("Comment %d not found in %d recent PRs of %s/%s", comment_id, len(pulls), owner, repo)
    return None
