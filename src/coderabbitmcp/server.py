"""FastMCP server for coderabbitmcp.

Exposes tools that read CodeRabbit reviews and inline comments from GitHub
pull requests as structured records, and that mark them as resolved.
Authentication uses a GitHub token (see :mod:`coderabbitmcp.github_api`).
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated

from fastmcp import FastMCP
from fastmcp.server.dependencies import get_context
from fastmcp.server.middleware.error_handling import ErrorHandlingMiddleware
from fastmcp.server.middleware.logging import LoggingMiddleware
from fastmcp.server.middleware.timing import TimingMiddleware
from pydantic import Field

from coderabbitmcp import github_api
from coderabbitmcp.config import load_config, set_config
from coderabbitmcp.errors import InputValidationError, NotAuthorizedError, NotFoundError
from coderabbitmcp.github_port import GitHubPort
from coderabbitmcp.models import (
    CommentDetailsResult,
    CommentListResult,
    ResolutionKind,
    ResolutionOutcome,
    ResolutionTier,
    ReviewDetailsResult,
    ReviewListResult,
)
from coderabbitmcp.tools import comments, resolve, reviews

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from coderabbitmcp.port import RepositoryPort

logger = logging.getLogger(__name__)

_port: RepositoryPort = GitHubPort()


def get_port() -> RepositoryPort:
    """Return the repository the tools operate on."""
    return _port


@asynccontextmanager
async def startup(server: FastMCP) -> AsyncIterator[dict[str, object]]:  # noqa: ARG001
    """Load configuration and make sure a GitHub token is available."""
    config, config_path = load_config()
    set_config(config, config_path=config_path)
    await check_prerequisites()
    yield {}


mcp = FastMCP(
    "coderabbitmcp",
    lifespan=startup,
    instructions="""\
Read CodeRabbit reviews and inline comments on GitHub pull requests as structured
records, and mark them as resolved once you have dealt with them.

## Workflow

1. `get_coderabbit_reviews(owner, repo, pull_number)`: list CodeRabbit reviews with
   their actionable comment counts.
2. `get_review_details(...)`: parse one review into entries (category, severity,
   AI prompt, committable suggestion, file and line range).
3. `get_review_comments(...)`: inline comments sorted by file and line. Each carries
   `ai_prompt` and `committable_suggestion` when CodeRabbit provided them.
4. `get_comment_details(owner, repo, comment_id)`: one comment with the code around
   it, fix examples and nearby related comments.
5. After fixing, `resolve_comment` (records the outcome on the PR) or
   `resolve_conversation` (resolves the review thread itself).

## Severity

error (🔒 security) > warning (⚠️ potential issue) > suggestion (🛠️ refactor) >
info (🧹 nitpick or unmarked). Work through errors and warnings first.

## Resolution outcomes

Resolution tools never raise. Check `succeeded` and `tier_used`: `none` means the
comment was not found or is not from CodeRabbit, `error` means every fallback
failed. Do not retry a `none` outcome with the same arguments.
""",
)


def _recovery_error(  # noqa: PLR0911
    exc: Exception,
    *,
    tool_name: str,
    pull_number: int | None = None,
    repo: str | None = None,
) -> str:
    """Build an actionable error message with recovery hints.

    Classifies errors into categories and suggests specific next steps
    so agents can self-correct instead of retrying blindly.
    """
    msg = str(exc)
    low = msg.lower()

    if isinstance(exc, InputValidationError):
        return f"{tool_name} failed: invalid arguments. {msg}. Fix the arguments; retrying unchanged will fail again."

    if isinstance(exc, github_api.GitHubAuthError):
        return f"{tool_name} failed: GitHub authentication problem. {msg}"

    if isinstance(exc, NotAuthorizedError):
        return f"{tool_name} failed: {msg}. Only comments written by CodeRabbit can be used here."

    if "rate limit" in low:
        return f"{tool_name} failed: GitHub API rate limit hit. Wait 60 seconds and retry."

    if isinstance(exc, NotFoundError) or "404" in msg:
        hints = [f"{tool_name} failed: {msg}."]
        if pull_number:
            hints.append(f"Verify PR #{pull_number} exists.")
        if repo:
            hints.append(f"Verify repo '{repo}' is correct.")
        if "recent pull requests" in low:
            hints.append("Raise [search] max_pull_requests in .coderabbitmcp.toml to search further back.")
        return " ".join(hints)

    if "graphql" in low:
        return f"{tool_name} failed: GitHub GraphQL error. {msg}. This may be a transient issue; retry once."

    parts = [f"{tool_name} failed: {msg}."]
    if pull_number:
        parts.append(f"Verify PR #{pull_number} exists.")
    return " ".join(parts)


mcp.add_middleware(ErrorHandlingMiddleware(include_traceback=True, transform_errors=True))
mcp.add_middleware(TimingMiddleware())
mcp.add_middleware(LoggingMiddleware(include_payloads=True, max_payload_length=500))


@mcp.tool(tags={"query"})
async def get_coderabbit_reviews(
    owner: Annotated[str, Field(description="Repository owner (user or organization)")],
    repo: Annotated[str, Field(description="Repository name")],
    pull_number: Annotated[int, Field(description="Pull request number")],
) -> ReviewListResult:
    """List all CodeRabbit reviews on a pull request.

    Returns:
        Reviews in submission order with id, state, commit, actionable comment count and summary.
    """
    try:
        ctx = get_context()
        found = await reviews.list_reviews(get_port(), owner, repo, pull_number, ctx=ctx)
        return ReviewListResult(reviews=found)
    except Exception as exc:
        logger.exception("get_coderabbit_reviews failed for %s/%s#%s", owner, repo, pull_number)
        error = _recovery_error(exc, tool_name="get_coderabbit_reviews", pull_number=pull_number, repo=repo)
        return ReviewListResult(error=error)
    except asyncio.CancelledError:
        logger.warning("get_coderabbit_reviews cancelled for %s/%s#%s", owner, repo, pull_number)
        return ReviewListResult(error="Cancelled")


@mcp.tool(tags={"query"})
async def get_review_details(
    owner: Annotated[str, Field(description="Repository owner (user or organization)")],
    repo: Annotated[str, Field(description="Repository name")],
    pull_number: Annotated[int, Field(description="Pull request number")],
    review_id: Annotated[int, Field(description="Review ID from get_coderabbit_reviews")],
) -> ReviewDetailsResult:
    """Parse one CodeRabbit review into structured entries.

    Each entry has the section it came from, a severity, a short description,
    and when present the AI agent prompt, committable suggestion, file path
    and line range. Also returns counts, reviewed files, configuration and profile.
    """
    try:
        details = await reviews.get_review_details(get_port(), owner, repo, pull_number, review_id)
        return ReviewDetailsResult(review=details)
    except Exception as exc:
        logger.exception("get_review_details failed for review %s on %s/%s#%s", review_id, owner, repo, pull_number)
        error = _recovery_error(exc, tool_name="get_review_details", pull_number=pull_number, repo=repo)
        return ReviewDetailsResult(error=error)
    except asyncio.CancelledError:
        logger.warning("get_review_details cancelled for review %s", review_id)
        return ReviewDetailsResult(error="Cancelled")


@mcp.tool(tags={"query"})
async def get_review_comments(
    owner: Annotated[str, Field(description="Repository owner (user or organization)")],
    repo: Annotated[str, Field(description="Repository name")],
    pull_number: Annotated[int, Field(description="Pull request number")],
    review_id: Annotated[int | None, Field(description="Only comments from this review")] = None,
) -> CommentListResult:
    """List CodeRabbit inline comments on a pull request, sorted by file then line.

    Group them by severity when presenting them: error, warning, suggestion, info.
    """
    try:
        ctx = get_context()
        found = await comments.list_comments(get_port(), owner, repo, pull_number, review_id, ctx=ctx)
        return CommentListResult(comments=found)
    except Exception as exc:
        logger.exception("get_review_comments failed for %s/%s#%s", owner, repo, pull_number)
        error = _recovery_error(exc, tool_name="get_review_comments", pull_number=pull_number, repo=repo)
        return CommentListResult(error=error)
    except asyncio.CancelledError:
        logger.warning("get_review_comments cancelled for %s/%s#%s", owner, repo, pull_number)
        return CommentListResult(error="Cancelled")


@mcp.tool(tags={"query"})
async def get_comment_details(
    owner: Annotated[str, Field(description="Repository owner (user or organization)")],
    repo: Annotated[str, Field(description="Repository name")],
    comment_id: Annotated[int, Field(description="Inline review comment ID")],
) -> CommentDetailsResult:
    """Get one CodeRabbit comment with the code around it, fix examples and related comments.

    The comment is looked up across the most recently updated pull requests.
    """
    try:
        ctx = get_context()
        details = await comments.get_comment_details(get_port(), owner, repo, comment_id, ctx=ctx)
        return CommentDetailsResult(comment=details)
    except Exception as exc:
        logger.exception("get_comment_details failed for comment %s on %s/%s", comment_id, owner, repo)
        return CommentDetailsResult(error=_recovery_error(exc, tool_name="get_comment_details", repo=repo))
    except asyncio.CancelledError:
        logger.warning("get_comment_details cancelled for comment %s", comment_id)
        return CommentDetailsResult(error="Cancelled")


def _failed_outcome(comment_id: int, message: str, *, resolved: bool | None = None) -> ResolutionOutcome:
    return ResolutionOutcome(
        succeeded=False,
        tier_used=ResolutionTier.ERROR,
        message=message,
        comment_id=comment_id,
        resolved=resolved,
    )


@mcp.tool(tags={"command"})
async def resolve_comment(
    owner: Annotated[str, Field(description="Repository owner (user or organization)")],
    repo: Annotated[str, Field(description="Repository name")],
    comment_id: Annotated[int, Field(description="Inline review comment ID")],
    resolution: Annotated[ResolutionKind, Field(description="How the comment was dealt with")] = ResolutionKind.ADDRESSED,
    note: Annotated[str | None, Field(description="Optional note explaining the resolution")] = None,
) -> ResolutionOutcome:
    """Record on the PR that a CodeRabbit comment was addressed, won't be fixed, or doesn't apply.

    Posts a reply on the pull request; if that fails, reacts with 👍 on the comment.
    Always returns an outcome: check ``succeeded`` and ``tier_used``.
    """
    try:
        return await resolve.resolve_comment(get_port(), owner, repo, comment_id, resolution, note)
    except Exception as exc:
        logger.exception("resolve_comment failed for comment %s on %s/%s", comment_id, owner, repo)
        return _failed_outcome(comment_id, _recovery_error(exc, tool_name="resolve_comment", repo=repo))
    except asyncio.CancelledError:
        logger.warning("resolve_comment cancelled for comment %s", comment_id)
        return _failed_outcome(comment_id, "Cancelled")


@mcp.tool(tags={"command"})
async def resolve_conversation(
    owner: Annotated[str, Field(description="Repository owner (user or organization)")],
    repo: Annotated[str, Field(description="Repository name")],
    comment_id: Annotated[int, Field(description="Inline review comment ID")],
    resolved: Annotated[bool, Field(description="True to resolve, False to reopen")] = True,  # noqa: FBT002
    note: Annotated[str | None, Field(description="Optional note posted on the PR")] = None,
) -> ResolutionOutcome:
    """Resolve or reopen the review conversation started by a CodeRabbit comment.

    Uses GitHub's review thread API first. When that is unavailable it falls back to a
    👍 reaction (resolve only) and then to a PR comment.
    Always returns an outcome: check ``succeeded`` and ``tier_used``.
    """
    try:
        return await resolve.resolve_conversation(get_port(), owner, repo, comment_id, resolved, note)
    except Exception as exc:
        logger.exception("resolve_conversation failed for comment %s on %s/%s", comment_id, owner, repo)
        error = _recovery_error(exc, tool_name="resolve_conversation", repo=repo)
        return _failed_outcome(comment_id, error, resolved=False)
    except asyncio.CancelledError:
        logger.warning("resolve_conversation cancelled for comment %s", comment_id)
        return _failed_outcome(comment_id, "Cancelled", resolved=False)


@mcp.prompt
def resolve_coderabbit_feedback() -> str:
    """Work through all CodeRabbit feedback on a pull request.

    Returns a structured workflow the agent should follow end-to-end.
    """
    return """\
You are addressing CodeRabbit's feedback on a pull request. Follow these steps in order:

1. **List reviews**: call `get_coderabbit_reviews(owner, repo, pull_number)` and note the
   latest review's `actionable_comments`.

2. **List comments**: call `get_review_comments(owner, repo, pull_number)`.
   Sort them by severity: error, warning, suggestion, info.

3. **Fix**: for each comment, in severity order:
   - Call `get_comment_details` when you need the surrounding code or related comments.
   - Apply the `committable_suggestion` when it fits, otherwise follow the `ai_prompt`.

4. **Record**: after each fix, call `resolve_comment` with `resolution="addressed"`.
   Use `wont_fix` or `not_applicable` with a `note` for comments you deliberately skip.

5. **Close threads**: call `resolve_conversation` for comments whose fix is pushed.

6. **Report**: summarize what was fixed, what was declined and why, and any outcome
   whose `succeeded` was false.
"""


async def check_prerequisites() -> None:
    """Verify that a GitHub token can be resolved.

    Raises:
        GitHubAuthError: If no token is configured.
    """
    try:
        await github_api.get_token()
    except github_api.GitHubAuthError:
        logger.exception("No GitHub token available")
        raise
    logger.info("GitHub token available")
