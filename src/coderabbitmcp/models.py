"""Pydantic models for coderabbitmcp."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from coderabbitmcp.errors import InputValidationError


class Severity(StrEnum):
    """Severity of a CodeRabbit finding. Assigned by marker rule, not by rank."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUGGESTION = "suggestion"


class ResolutionKind(StrEnum):
    """How a CodeRabbit comment was dealt with."""

    ADDRESSED = "addressed"
    WONT_FIX = "wont_fix"
    NOT_APPLICABLE = "not_applicable"


class ResolutionTier(StrEnum):
    """Which remote action settled a resolution request."""

    DIRECT_REPLY = "direct-reply"
    CONVERSATION_API = "conversation-api"
    REACTION = "reaction"
    COMMENT_FALLBACK = "comment-fallback"
    NONE = "none"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Raw platform records
# ---------------------------------------------------------------------------


class RawReview(BaseModel):
    """A pull request review as delivered by the repository port."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Review ID")
    node_id: str = Field(default="", description="GraphQL node ID")
    author: str = Field(default="unknown", description="Login of the review author")
    body: str = Field(default="", description="Markdown body of the review")
    submitted_at: datetime | None = Field(default=None, description="When the review was submitted")
    state: str = Field(default="COMMENTED", description="Review state (COMMENTED, APPROVED, ...)")
    commit_id: str = Field(default="", description="Commit the review was made against")
    html_url: str = Field(default="", description="Permalink to the review")


class RawComment(BaseModel):
    """An inline review comment as delivered by the repository port."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Comment ID")
    node_id: str = Field(default="", description="GraphQL node ID")
    author: str = Field(default="unknown", description="Login of the comment author")
    body: str = Field(default="", description="Markdown body of the comment")
    path: str = Field(default="", description="File path the comment is anchored to")
    side: Literal["LEFT", "RIGHT"] = Field(default="RIGHT", description="Diff side of the anchor")
    start_line: int | None = Field(default=None, description="First line of a multi-line anchor")
    line: int | None = Field(default=None, description="Last (or only) anchored line")
    pull_request_review_id: int | None = Field(default=None, description="Review this comment belongs to")
    diff_hunk: str = Field(default="", description="Diff hunk the comment was made on")
    created_at: datetime | None = Field(default=None, description="When the comment was posted")
    updated_at: datetime | None = Field(default=None, description="When the comment was last edited")
    html_url: str = Field(default="", description="Permalink to the comment")


class PullRequestSummary(BaseModel):
    """Minimal pull request listing entry."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(description="PR number")
    state: str = Field(default="open", description="open or closed")
    title: str = Field(default="", description="PR title")
    html_url: str = Field(default="", description="PR URL")
    created_at: datetime | None = Field(default=None, description="When the PR was opened")
    updated_at: datetime | None = Field(default=None, description="When the PR was last updated")


class CredentialCheck(BaseModel):
    """Result of validating the configured GitHub credentials."""

    valid: bool = Field(description="Whether the token was accepted")
    scopes: list[str] = Field(default_factory=list, description="OAuth scopes granted to the token")
    user: str = Field(default="", description="Login the token belongs to")


# ---------------------------------------------------------------------------
# Parsed records
# ---------------------------------------------------------------------------


class ClassifiedEntry(BaseModel):
    """One finding extracted from a section of a review body."""

    category: str = Field(description="Section label the finding was found under")
    severity: Severity = Field(description="Severity from the first matching marker rule")
    description: str = Field(description="Short synthesized description")
    ai_prompt: str | None = Field(default=None, description="Content of the 'Prompt for AI Agents' block")
    committable_suggestion: str | None = Field(default=None, description="Content of the committable suggestion block")
    file_path: str | None = Field(default=None, description="First source file path mentioned in the section")
    line_range: str | None = Field(default=None, description="First 'line N' / 'lines N-M' reference, e.g. '10-12'")


class ParsedReview(BaseModel):
    """Structured content of a CodeRabbit review body."""

    actionable_comments: int = Field(default=0, ge=0, description="Count from 'Actionable comments posted'")
    duplicate_comments: int = Field(default=0, ge=0, description="Count from 'Duplicate comments (N)'")
    nitpick_comments: int = Field(default=0, ge=0, description="Count from 'Nitpick comments (N)'")
    summary: str = Field(default="", description="Text following the 'Review details' header")
    entries: list[ClassifiedEntry] = Field(default_factory=list, description="Findings in document order")
    files_reviewed: list[str] = Field(default_factory=list, description="Files selected for processing, deduplicated")
    configuration_used: str = Field(default="Unknown", description="CodeRabbit configuration label")
    review_profile: str = Field(default="Unknown", description="CodeRabbit review profile label")


class LineRange(BaseModel):
    """Anchored line span of an inline comment (platform values, not reordered)."""

    start: int = Field(default=1, ge=1)
    end: int = Field(default=1, ge=1)


class ParsedComment(BaseModel):
    """Structured content of a single CodeRabbit inline comment."""

    severity: Severity = Field(description="Severity from the first matching marker rule")
    category: str = Field(description="Category of the first matching marker rule, or 'General'")
    description: str = Field(description="Short synthesized description")
    ai_prompt: str | None = Field(default=None, description="Content of the 'Prompt for AI Agents' block")
    committable_suggestion: str | None = Field(default=None, description="Content of the committable suggestion block")
    line_range: LineRange = Field(default_factory=LineRange, description="Anchored lines, {1,1} when unanchored")
    is_resolved: bool = Field(
        default=False,
        description="Heuristic: body contains a '✅ Addressed/Fixed/Resolved' acknowledgement",
    )
    related_comment_ids: list[int] = Field(default_factory=list, description="Nearby comments on the same file")


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class ReviewSummary(BaseModel):
    """A CodeRabbit review in a pull request's review listing."""

    id: int = Field(description="Review ID")
    submitted_at: datetime | None = Field(default=None, description="When the review was submitted")
    html_url: str = Field(default="", description="Permalink to the review")
    state: str = Field(default="", description="Review state")
    actionable_comments: int = Field(default=0, description="Number of actionable comments posted")
    summary: str = Field(default="", description="Review details summary")
    commit_id: str = Field(default="", description="Commit the review was made against")
    body: str = Field(default="", description="Raw review body")


class ReviewListResult(BaseModel):
    """Result of listing CodeRabbit reviews on a PR."""

    reviews: list[ReviewSummary] = Field(default_factory=list, description="CodeRabbit reviews in submission order")
    error: str | None = Field(default=None, description="Error message if the request failed")


class ReviewDetails(BaseModel):
    """A CodeRabbit review with its parsed content."""

    id: int = Field(description="Review ID")
    submitted_at: datetime | None = Field(default=None, description="When the review was submitted")
    html_url: str = Field(default="", description="Permalink to the review")
    state: str = Field(default="", description="Review state")
    commit_id: str = Field(default="", description="Commit the review was made against")
    body: str = Field(default="", description="Raw review body")
    parsed: ParsedReview = Field(description="Structured review content")


class ReviewDetailsResult(BaseModel):
    """Result of fetching one CodeRabbit review."""

    review: ReviewDetails | None = Field(default=None, description="The review, when found")
    error: str | None = Field(default=None, description="Error message if the request failed")


class CommentRecord(ParsedComment):
    """A parsed CodeRabbit comment together with its platform identity."""

    id: int = Field(description="Comment ID")
    body: str = Field(default="", description="Raw comment body")
    path: str = Field(default="", description="File path the comment is anchored to")
    side: str = Field(default="RIGHT", description="Diff side of the anchor")
    html_url: str = Field(default="", description="Permalink to the comment")
    diff_hunk: str = Field(default="", description="Diff hunk the comment was made on")
    review_id: int | None = Field(default=None, description="Review this comment belongs to")
    created_at: datetime | None = Field(default=None, description="When the comment was posted")
    updated_at: datetime | None = Field(default=None, description="When the comment was last edited")


class CommentListResult(BaseModel):
    """Result of listing CodeRabbit comments on a PR."""

    comments: list[CommentRecord] = Field(default_factory=list, description="Comments sorted by file then line")
    error: str | None = Field(default=None, description="Error message if the request failed")


class CommentDetails(CommentRecord):
    """A CodeRabbit comment with surrounding context and fix examples."""

    pr_number: int = Field(description="PR the comment was found on")
    file_context: str = Field(default="", description="Diff hunk with diff markers stripped")
    fix_examples: list[str] = Field(default_factory=list, description="Suggestion, diff and code blocks from the body")


class CommentDetailsResult(BaseModel):
    """Result of fetching one CodeRabbit comment."""

    comment: CommentDetails | None = Field(default=None, description="The comment, when found")
    error: str | None = Field(default=None, description="Error message if the request failed")


class ResolutionOutcome(BaseModel):
    """Outcome of a resolution request. Always returned, even on failure."""

    succeeded: bool = Field(description="Whether any tier confirmed the resolution")
    tier_used: ResolutionTier = Field(description="Tier that succeeded, or none/error")
    message: str = Field(description="Human-readable account of what happened")
    comment_id: int = Field(description="Comment the request was about")
    resolved: bool | None = Field(default=None, description="Resulting conversation state (conversation requests only)")


# ---------------------------------------------------------------------------
# Validated inputs
# ---------------------------------------------------------------------------


class RepoInput(BaseModel):
    """Owner/repo pair shared by every operation."""

    model_config = ConfigDict(extra="forbid")

    owner: str = Field(min_length=1, description="Repository owner (user or organization)")
    repo: str = Field(min_length=1, description="Repository name")


class PullRequestInput(RepoInput):
    pull_number: int = Field(gt=0, description="Pull request number")


class ReviewInput(PullRequestInput):
    review_id: int = Field(gt=0, description="Review ID")


class CommentListInput(PullRequestInput):
    review_id: int | None = Field(default=None, gt=0, description="Only comments from this review")


class CommentInput(RepoInput):
    comment_id: int = Field(gt=0, description="Comment ID")


class ResolveCommentInput(CommentInput):
    resolution: ResolutionKind = Field(default=ResolutionKind.ADDRESSED, description="How the comment was dealt with")
    note: str | None = Field(default=None, description="Optional free-text note")


class ResolveConversationInput(CommentInput):
    resolved: bool = Field(default=True, description="True to resolve, False to reopen")
    note: str | None = Field(default=None, description="Optional free-text note")


def validate_input[ModelT: BaseModel](model_cls: type[ModelT], **values: Any) -> ModelT:
    """Validate tool arguments before any remote call.

    Raises:
        InputValidationError: With pydantic's message when a value is rejected.
    """
    try:
        return model_cls.model_validate(values)
    except ValidationError as exc:
        raise InputValidationError(str(exc)) from exc
