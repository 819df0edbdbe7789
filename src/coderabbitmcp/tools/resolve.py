"""MCP tools for marking CodeRabbit comments and conversations as resolved."""

from __future__ import annotations

from typing import TYPE_CHECKING

from coderabbitmcp import resolution
from coderabbitmcp.config import get_config
from coderabbitmcp.models import ResolutionKind, ResolveCommentInput, ResolveConversationInput, validate_input

if TYPE_CHECKING:
    from coderabbitmcp.models import ResolutionOutcome
    from coderabbitmcp.port import RepositoryPort


async def resolve_comment(  # noqa: PLR0913
    port: RepositoryPort,
    owner: str,
    repo: str,
    comment_id: int,
    resolution_kind: ResolutionKind | str = ResolutionKind.ADDRESSED,
    note: str | None = None,
) -> ResolutionOutcome:
    """Record on the PR that a CodeRabbit comment was addressed, declined or not applicable.

    Returns an outcome even when nothing could be posted; check ``succeeded``
    and ``tier_used``.

    Raises:
        InputValidationError: If an argument is rejected.
    """
    args = validate_input(
        ResolveCommentInput,
        owner=owner,
        repo=repo,
        comment_id=comment_id,
        resolution=resolution_kind,
        note=note,
    )
    config = get_config()
    return await resolution.resolve_comment(
        port,
        config.identity(),
        args.owner,
        args.repo,
        args.comment_id,
        resolution=args.resolution,
        note=args.note,
        max_pull_requests=config.search.max_pull_requests,
    )


async def resolve_conversation(  # noqa: PLR0913
    port: RepositoryPort,
    owner: str,
    repo: str,
    comment_id: int,
    resolved: bool = True,  # noqa: FBT001, FBT002
    note: str | None = None,
) -> ResolutionOutcome:
    """Resolve or reopen the review conversation a CodeRabbit comment started.

    Raises:
        InputValidationError: If an argument is rejected.
    """
    args = validate_input(
        ResolveConversationInput,
        owner=owner,
        repo=repo,
        comment_id=comment_id,
        resolved=resolved,
        note=note,
    )
    config = get_config()
    return await resolution.resolve_conversation(
        port,
        config.identity(),
        args.owner,
        args.repo,
        args.comment_id,
        resolved=args.resolved,
        note=args.note,
        max_pull_requests=config.search.max_pull_requests,
    )
