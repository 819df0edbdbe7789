"""MCP tools for CodeRabbit inline review comments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coderabbitmcp.config import get_config
from coderabbitmcp.correlation import find_related
from coderabbitmcp.errors import NotFoundError, RemoteFailureError
from coderabbitmcp.models import CommentDetails, CommentInput, CommentListInput, CommentRecord, validate_input
from coderabbitmcp.parsing import parse_comment
from coderabbitmcp.parsing.blocks import fix_examples
from coderabbitmcp.search import locate_comment

if TYPE_CHECKING:
    from fastmcp.server.context import Context

    from coderabbitmcp.config import Config
    from coderabbitmcp.models import RawComment
    from coderabbitmcp.port import RepositoryPort

logger = logging.getLogger(__name__)

_DIFF_MARKERS = ("+", "-", " ")


def file_context(diff_hunk: str, path: str) -> str:
    """Readable code around a comment: the diff hunk without hunk headers or diff markers."""
    if not diff_hunk:
        return ""
    lines = [
        line[1:] if line.startswith(_DIFF_MARKERS) else line
        for line in diff_hunk.split("\n")
        if not line.startswith("@@") and line.strip()
    ]
    return f"File: {path}\n\n" + "\n".join(lines)


def _related(raw: RawComment, pr_comments: list[RawComment], config: Config) -> list[int]:
    return find_related(
        raw,
        pr_comments,
        window=config.correlation.proximity_window,
        missing_anchor=config.correlation.missing_anchor_line,
    )


def _record(raw: RawComment, pr_comments: list[RawComment], config: Config) -> CommentRecord:
    parsed = parse_comment(raw, config.identity(), _related(raw, pr_comments, config))
    return CommentRecord(
        **parsed.model_dump(),
        id=raw.id,
        body=raw.body,
        path=raw.path,
        side=raw.side,
        html_url=raw.html_url,
        diff_hunk=raw.diff_hunk,
        review_id=raw.pull_request_review_id,
        created_at=raw.created_at,
        updated_at=raw.updated_at,
    )


async def list_comments(
    port: RepositoryPort,
    owner: str,
    repo: str,
    pull_number: int,
    review_id: int | None = None,
    ctx: Context | None = None,
) -> list[CommentRecord]:
    """List CodeRabbit inline comments on a PR, sorted by file then line.

    Args:
        port: Repository to read from.
        owner: Repository owner.
        repo: Repository name.
        pull_number: PR number.
        review_id: Only return comments posted as part of this review.
        ctx: FastMCP context for progress reporting.
    """
    args = validate_input(CommentListInput, owner=owner, repo=repo, pull_number=pull_number, review_id=review_id)
    if ctx:
        await ctx.info(f"Fetching review comments for {args.owner}/{args.repo}#{args.pull_number}")

    try:
        pr_comments = await port.fetch_comments(args.owner, args.repo, args.pull_number)
    except RemoteFailureError as exc:
        msg = f"Failed to get review comments: {exc}"
        raise RemoteFailureError(msg) from exc

    config = get_config()
    identity = config.identity()
    selected = [
        c
        for c in pr_comments
        if identity.identify(c.author) and (args.review_id is None or c.pull_request_review_id == args.review_id)
    ]
    records = [_record(c, pr_comments, config) for c in selected]
    records.sort(key=lambda r: (r.path, r.line_range.start))
    logger.debug("PR #%d has %d CodeRabbit comment(s)", args.pull_number, len(records))
    return records


async def get_comment_details(
    port: RepositoryPort,
    owner: str,
    repo: str,
    comment_id: int,
    ctx: Context | None = None,
) -> CommentDetails:
    """Locate a CodeRabbit comment by ID and return it with context and fix examples.

    The comment is searched for across the most recently updated PRs
    (``[search] max_pull_requests``).

    Raises:
        NotFoundError: If no scanned PR has the comment.
        NotAuthorizedError: If the comment was not written by CodeRabbit.
    """
    args = validate_input(CommentInput, owner=owner, repo=repo, comment_id=comment_id)
    config = get_config()
    if ctx:
        await ctx.info(f"Searching {config.search.max_pull_requests} recent PRs for comment {args.comment_id}")

    try:
        located = await locate_comment(
            port,
            args.owner,
            args.repo,
            args.comment_id,
            max_pull_requests=config.search.max_pull_requests,
        )
    except RemoteFailureError as exc:
        msg = f"Failed to get comment details: {exc}"
        raise RemoteFailureError(msg) from exc

    if located is None:
        msg = f"Comment with ID {args.comment_id} not found in recent pull requests"
        raise NotFoundError(msg)

    raw = located.comment
    record = _record(raw, located.pr_comments, config)
    return CommentDetails(
        **record.model_dump(),
        pr_number=located.pull_request.number,
        file_context=file_context(raw.diff_hunk, raw.path),
        fix_examples=fix_examples(raw.body),
    )
