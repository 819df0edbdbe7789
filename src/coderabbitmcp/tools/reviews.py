"""MCP tools for CodeRabbit pull request reviews."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coderabbitmcp.config import get_config
from coderabbitmcp.errors import NotFoundError, RemoteFailureError
from coderabbitmcp.models import PullRequestInput, ReviewDetails, ReviewInput, ReviewSummary, validate_input
from coderabbitmcp.parsing import parse_review

if TYPE_CHECKING:
    from fastmcp.server.context import Context

    from coderabbitmcp.models import RawReview
    from coderabbitmcp.port import RepositoryPort

logger = logging.getLogger(__name__)


async def _bot_reviews(port: RepositoryPort, owner: str, repo: str, pull_number: int, operation: str) -> list[RawReview]:
    try:
        reviews = await port.fetch_reviews(owner, repo, pull_number)
    except RemoteFailureError as exc:
        msg = f"Failed to {operation}: {exc}"
        raise RemoteFailureError(msg) from exc
    identity = get_config().identity()
    return [review for review in reviews if identity.identify(review.author)]


async def list_reviews(
    port: RepositoryPort,
    owner: str,
    repo: str,
    pull_number: int,
    ctx: Context | None = None,
) -> list[ReviewSummary]:
    """List CodeRabbit reviews on a pull request, in submission order.

    Args:
        port: Repository to read from.
        owner: Repository owner.
        repo: Repository name.
        pull_number: PR number.
        ctx: FastMCP context for progress reporting.

    Returns:
        One summary per CodeRabbit review with its actionable count and summary text.
    """
    args = validate_input(PullRequestInput, owner=owner, repo=repo, pull_number=pull_number)
    if ctx:
        await ctx.info(f"Fetching CodeRabbit reviews for {args.owner}/{args.repo}#{args.pull_number}")

    reviews = await _bot_reviews(port, args.owner, args.repo, args.pull_number, "get CodeRabbit reviews")
    summaries: list[ReviewSummary] = []
    for review in reviews:
        parsed = parse_review(review.body, detailed=False)
        summaries.append(
            ReviewSummary(
                id=review.id,
                submitted_at=review.submitted_at,
                html_url=review.html_url,
                state=review.state,
                actionable_comments=parsed.actionable_comments,
                summary=parsed.summary,
                commit_id=review.commit_id,
                body=review.body,
            )
        )
    logger.debug("PR #%d has %d CodeRabbit review(s)", args.pull_number, len(summaries))
    return summaries


async def get_review_details(
    port: RepositoryPort,
    owner: str,
    repo: str,
    pull_number: int,
    review_id: int,
) -> ReviewDetails:
    """Fetch one CodeRabbit review and parse its body in full.

    Raises:
        NotFoundError: If the PR has no CodeRabbit review with *review_id*.
    """
    args = validate_input(ReviewInput, owner=owner, repo=repo, pull_number=pull_number, review_id=review_id)
    reviews = await _bot_reviews(port, args.owner, args.repo, args.pull_number, "get review details")

    review = next((r for r in reviews if r.id == args.review_id), None)
    if review is None:
        msg = f"CodeRabbit review with ID {args.review_id} not found in PR #{args.pull_number}"
        raise NotFoundError(msg)

    return ReviewDetails(
        id=review.id,
        submitted_at=review.submitted_at,
        html_url=review.html_url,
        state=review.state,
        commit_id=review.commit_id,
        body=review.body,
        parsed=parse_review(review.body),
    )
