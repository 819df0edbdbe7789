"""Abstract base for the remote repository the tools operate on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from coderabbitmcp.errors import UnsupportedCapabilityError

if TYPE_CHECKING:
    from coderabbitmcp.models import CredentialCheck, PullRequestSummary, RawComment, RawReview

PullRequestState = Literal["open", "closed", "all"]
PullRequestSort = Literal["created", "updated", "popularity", "long-running"]
SortDirection = Literal["asc", "desc"]


class RepositoryPort(ABC):
    """Everything the core needs from a code hosting platform.

    Implementations raise :exc:`~coderabbitmcp.errors.RemoteFailureError`
    (or a subclass) when the platform call fails, and
    :exc:`~coderabbitmcp.errors.UnsupportedCapabilityError` when an optional
    action does not exist on the platform. Bot identity is not the port's
    concern: it returns every author's records.
    """

    @abstractmethod
    async def fetch_reviews(self, owner: str, repo: str, pull_number: int) -> list[RawReview]:
        """All reviews on a pull request, oldest first."""

    @abstractmethod
    async def fetch_comments(self, owner: str, repo: str, pull_number: int) -> list[RawComment]:
        """All inline review comments on a pull request, oldest first."""

    @abstractmethod
    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        *,
        state: PullRequestState = "all",
        sort: PullRequestSort = "updated",
        direction: SortDirection = "desc",
        per_page: int = 20,
    ) -> list[PullRequestSummary]:
        """One page of pull requests in the requested order."""

    @abstractmethod
    async def post_issue_comment(self, owner: str, repo: str, pull_number: int, body: str) -> None:
        """Post a top-level comment on the pull request's conversation."""

    @property
    def supports_reactions(self) -> bool:
        """Whether :meth:`add_reaction` is available on this platform."""
        return False

    async def add_reaction(self, owner: str, repo: str, comment_id: int, content: str) -> None:  # noqa: ARG002
        """React to a review comment. Unsupported unless overridden."""
        msg = "Reactions are not supported by this repository"
        raise UnsupportedCapabilityError(msg)

    @abstractmethod
    async def set_conversation_resolved(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        comment_id: int,
        *,
        resolved: bool,
    ) -> None:
        """Resolve or reopen the conversation a review comment belongs to."""

    @abstractmethod
    async def validate_credentials(self) -> CredentialCheck:
        """Check the configured credentials. Never raises."""
