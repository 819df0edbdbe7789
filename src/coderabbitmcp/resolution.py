"""Resolution orchestrator: mark a CodeRabbit comment as dealt with.

GitHub offers no single reliable way to "resolve" a bot comment, so each
request runs an ordered plan of tiers. Every tier is one remote action; the
first that succeeds settles the outcome. A tier that raises
:exc:`RemoteFailureError` or :exc:`UnsupportedCapabilityError` hands over to
the next one. Nothing is retried and no state survives the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from coderabbitmcp.errors import RemoteFailureError, UnsupportedCapabilityError
from coderabbitmcp.models import ResolutionKind, ResolutionOutcome, ResolutionTier
from coderabbitmcp.search import locate_comment

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from coderabbitmcp.identity import BotIdentity
    from coderabbitmcp.port import RepositoryPort
    from coderabbitmcp.search import LocatedComment

logger = logging.getLogger(__name__)

ACK_REACTION = "+1"


class Request(StrEnum):
    RESOLVE_COMMENT = "resolve-comment"
    RESOLVE_CONVERSATION = "resolve-conversation"
    REOPEN_CONVERSATION = "reopen-conversation"


# Transition table: each request walks its tiers left to right until one succeeds.
TIER_PLANS: dict[Request, tuple[ResolutionTier, ...]] = {
    Request.RESOLVE_COMMENT: (ResolutionTier.DIRECT_REPLY, ResolutionTier.REACTION),
    Request.RESOLVE_CONVERSATION: (
        ResolutionTier.CONVERSATION_API,
        ResolutionTier.REACTION,
        ResolutionTier.COMMENT_FALLBACK,
    ),
    Request.REOPEN_CONVERSATION: (ResolutionTier.CONVERSATION_API, ResolutionTier.COMMENT_FALLBACK),
}

RESOLUTION_TEXT: dict[ResolutionKind, tuple[str, str]] = {
    ResolutionKind.ADDRESSED: ("✅", "Addressed and implemented"),
    ResolutionKind.WONT_FIX: ("🚫", "Will not fix - issue acknowledged but not actionable"),
    ResolutionKind.NOT_APPLICABLE: ("❌", "Not applicable to current context"),
}

SIGNATURE_RESOLVED = "*Resolved via CodeRabbit MCP*"
SIGNATURE_UPDATED = "*Updated via CodeRabbit MCP*"
SIGNATURE_REOPENED = "*Reopened via CodeRabbit MCP*"


@dataclass(frozen=True, slots=True)
class _Attempt:
    """Everything a tier action needs to act on one located comment."""

    port: RepositoryPort
    owner: str
    repo: str
    located: LocatedComment
    request: Request
    resolution: ResolutionKind
    note: str | None

    @property
    def comment_id(self) -> int:
        return self.located.comment.id

    @property
    def pull_number(self) -> int:
        return self.located.pull_request.number

    @property
    def comment_link(self) -> str:
        return f"[#{self.comment_id}]({self.located.comment.html_url})"

    async def post(self, body: str) -> None:
        await self.port.post_issue_comment(self.owner, self.repo, self.pull_number, body)


# ---------------------------------------------------------------------------
# Message bodies
# ---------------------------------------------------------------------------


def resolution_reply(comment_id: int, html_url: str, resolution: ResolutionKind, note: str | None = None) -> str:
    """Body of the PR comment that records a comment resolution."""
    emoji, message = RESOLUTION_TEXT[resolution]
    parts = [
        f"**Resolving CodeRabbit comment [#{comment_id}]({html_url})**",
        f"{emoji} **{message}**",
    ]
    if note:
        parts.append(f"**Note:** {note}")
    parts.append(SIGNATURE_RESOLVED)
    return "\n\n".join(parts)


def _conversation_note(note: str, *, resolved: bool) -> str:
    if resolved:
        return f"**Conversation resolved:** {note}\n\n{SIGNATURE_RESOLVED}"
    return f"**Conversation reopened:** {note}\n\n{SIGNATURE_UPDATED}"


def _fallback_comment(attempt: _Attempt) -> str:
    if attempt.request is Request.REOPEN_CONVERSATION:
        if attempt.note:
            return f"**Conversation reopened:** {attempt.note}\n\n{SIGNATURE_REOPENED}"
        return f"**Conversation reopened for comment {attempt.comment_link}**\n\n{SIGNATURE_REOPENED}"
    if attempt.note:
        return (
            f"**Conversation resolved:** {attempt.note}\n\n"
            "*Note: Direct conversation resolution not available, using comment tracking*\n\n"
            f"{SIGNATURE_RESOLVED}"
        )
    return (
        f"**Conversation resolved for comment {attempt.comment_link}**\n\n"
        "*Note: Direct conversation resolution not available*\n\n"
        f"{SIGNATURE_RESOLVED}"
    )


# ---------------------------------------------------------------------------
# Tier actions. Each returns a success message or raises.
# ---------------------------------------------------------------------------


async def _direct_reply(attempt: _Attempt) -> str:
    body = resolution_reply(attempt.comment_id, attempt.located.comment.html_url, attempt.resolution, attempt.note)
    await attempt.post(body)
    return f"Added resolution comment to PR #{attempt.pull_number}"


async def _reaction(attempt: _Attempt) -> str:
    if not attempt.port.supports_reactions:
        msg = "reactions are not supported by this repository"
        raise UnsupportedCapabilityError(msg)
    await attempt.port.add_reaction(attempt.owner, attempt.repo, attempt.comment_id, ACK_REACTION)
    return f"Added positive reaction to comment {attempt.comment_id} to indicate resolution"


async def _conversation_api(attempt: _Attempt) -> str:
    resolved = attempt.request is not Request.REOPEN_CONVERSATION
    await attempt.port.set_conversation_resolved(
        attempt.owner,
        attempt.repo,
        attempt.pull_number,
        attempt.comment_id,
        resolved=resolved,
    )
    state = "resolved" if resolved else "unresolved"
    message = f"Conversation marked as {state} in PR #{attempt.pull_number}"
    if not attempt.note:
        return message

    # The note is an extra; failing to post it does not undo the state change.
    try:
        await attempt.post(_conversation_note(attempt.note, resolved=resolved))
    except RemoteFailureError as exc:
        logger.warning("Could not post note for comment %d: %s", attempt.comment_id, exc)
        return f"{message} (note could not be posted: {exc})"
    return f'{message} with note: "{attempt.note}"'


async def _comment_fallback(attempt: _Attempt) -> str:
    await attempt.post(_fallback_comment(attempt))
    if attempt.request is Request.REOPEN_CONVERSATION:
        return f"Added reopen comment to PR #{attempt.pull_number}"
    return f"Added resolution comment to PR #{attempt.pull_number} (API limitations)"


_TIER_ACTIONS: dict[ResolutionTier, Callable[[_Attempt], Awaitable[str]]] = {
    ResolutionTier.DIRECT_REPLY: _direct_reply,
    ResolutionTier.REACTION: _reaction,
    ResolutionTier.CONVERSATION_API: _conversation_api,
    ResolutionTier.COMMENT_FALLBACK: _comment_fallback,
}


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


async def _run(  # noqa: PLR0913
    port: RepositoryPort,
    identity: BotIdentity,
    request: Request,
    owner: str,
    repo: str,
    comment_id: int,
    *,
    resolution: ResolutionKind = ResolutionKind.ADDRESSED,
    note: str | None = None,
    max_pull_requests: int = 20,
) -> ResolutionOutcome:
    requested_state = None if request is Request.RESOLVE_COMMENT else request is Request.RESOLVE_CONVERSATION

    def outcome(tier: ResolutionTier, message: str, *, succeeded: bool = False) -> ResolutionOutcome:
        resolved = None if requested_state is None else (requested_state if succeeded else False)
        return ResolutionOutcome(
            succeeded=succeeded,
            tier_used=tier,
            message=message,
            comment_id=comment_id,
            resolved=resolved,
        )

    try:
        located = await locate_comment(port, owner, repo, comment_id, max_pull_requests=max_pull_requests)
    except RemoteFailureError as exc:
        return outcome(ResolutionTier.ERROR, f"Failed to locate comment {comment_id}: {exc}")

    if located is None:
        return outcome(ResolutionTier.NONE, f"Comment with ID {comment_id} not found in recent pull requests")

    if not identity.identify(located.comment.author):
        return outcome(ResolutionTier.NONE, f"Comment {comment_id} is not from CodeRabbit AI")

    attempt = _Attempt(port, owner, repo, located, request, resolution, note)
    failures: list[str] = []
    for tier in TIER_PLANS[request]:
        logger.debug("%s for comment %d: trying %s", request, comment_id, tier)
        try:
            message = await _TIER_ACTIONS[tier](attempt)
        except (RemoteFailureError, UnsupportedCapabilityError) as exc:
            logger.warning("%s tier failed for comment %d: %s", tier, comment_id, exc)
            failures.append(f"{tier}: {exc}")
            continue
        if failures:
            message = f"{message} (after {'; '.join(failures)})"
        return outcome(tier, message, succeeded=True)

    summary = "; ".join(failures)
    return outcome(ResolutionTier.ERROR, f"Every resolution tier failed for comment {comment_id}: {summary}")


async def resolve_comment(  # noqa: PLR0913
    port: RepositoryPort,
    identity: BotIdentity,
    owner: str,
    repo: str,
    comment_id: int,
    *,
    resolution: ResolutionKind = ResolutionKind.ADDRESSED,
    note: str | None = None,
    max_pull_requests: int = 20,
) -> ResolutionOutcome:
    """Record that a CodeRabbit comment was addressed, declined or not applicable.

    Tiers: reply on the PR, then a 👍 reaction on the comment.
    """
    return await _run(
        port,
        identity,
        Request.RESOLVE_COMMENT,
        owner,
        repo,
        comment_id,
        resolution=resolution,
        note=note,
        max_pull_requests=max_pull_requests,
    )


async def resolve_conversation(  # noqa: PLR0913
    port: RepositoryPort,
    identity: BotIdentity,
    owner: str,
    repo: str,
    comment_id: int,
    *,
    resolved: bool = True,
    note: str | None = None,
    max_pull_requests: int = 20,
) -> ResolutionOutcome:
    """Resolve (or reopen) the review conversation of a CodeRabbit comment.

    Tiers when resolving: the GraphQL thread API, a 👍 reaction, then a PR
    comment. Reopening has no reaction tier.
    """
    request = Request.RESOLVE_CONVERSATION if resolved else Request.REOPEN_CONVERSATION
    return await _run(
        port,
        identity,
        request,
        owner,
        repo,
        comment_id,
        note=note,
        max_pull_requests=max_pull_requests,
    )
