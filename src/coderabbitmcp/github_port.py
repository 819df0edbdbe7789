"""GitHub implementation of :class:`~coderabbitmcp.port.RepositoryPort`.

Reads go through the REST API; conversation resolution needs the GraphQL
``resolveReviewThread`` / ``unresolveReviewThread`` mutations, which take a
thread node ID, so the thread is looked up from the comment's database ID
first.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, override

from coderabbitmcp import github_api
from coderabbitmcp.errors import UnsupportedCapabilityError
from coderabbitmcp.models import CredentialCheck, PullRequestSummary, RawComment, RawReview
from coderabbitmcp.port import RepositoryPort

if TYPE_CHECKING:
    from coderabbitmcp.port import PullRequestSort, PullRequestState, SortDirection

logger = logging.getLogger(__name__)

_PER_PAGE = 100

# Review threads of a PR with the database IDs of their comments (paginated)
_THREADS_QUERY = """
query($owner: String!, $repo: String!, $pr: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $pr) {
      reviewThreads(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          isResolved
          comments(first: 100) {
            nodes { databaseId }
          }
        }
      }
    }
  }
}
"""

_RESOLVE_THREAD_MUTATION = """
mutation($threadId: ID!) {
  resolveReviewThread(input: {threadId: $threadId}) {
    thread { id isResolved }
  }
}
"""

_UNRESOLVE_THREAD_MUTATION = """
mutation($threadId: ID!) {
  unresolveReviewThread(input: {threadId: $threadId}) {
    thread { id isResolved }
  }
}
"""


def _login(item: dict[str, Any]) -> str:
    # Deleted accounts come back as a null user
    user = item.get("user") or {}
    return user.get("login", "unknown")


def review_from_api(item: dict[str, Any]) -> RawReview:
    return RawReview(
        id=item["id"],
        node_id=item.get("node_id", ""),
        author=_login(item),
        body=item.get("body") or "",
        submitted_at=item.get("submitted_at"),
        state=item.get("state", "COMMENTED"),
        commit_id=item.get("commit_id") or "",
        html_url=item.get("html_url", ""),
    )


def comment_from_api(item: dict[str, Any]) -> RawComment:
    """Map a REST review comment onto :class:`RawComment`.

    The ``original_*`` anchors are used because they survive later pushes;
    ``line`` turns null once the commented code is outdated.
    """
    return RawComment(
        id=item["id"],
        node_id=item.get("node_id", ""),
        author=_login(item),
        body=item.get("body") or "",
        path=item.get("path", ""),
        side=item.get("side") or "RIGHT",
        start_line=item.get("original_start_line"),
        line=item.get("original_line"),
        pull_request_review_id=item.get("pull_request_review_id"),
        diff_hunk=item.get("diff_hunk") or "",
        created_at=item.get("created_at"),
        updated_at=item.get("updated_at"),
        html_url=item.get("html_url", ""),
    )


def pull_request_from_api(item: dict[str, Any]) -> PullRequestSummary:
    return PullRequestSummary(
        number=item["number"],
        state=item.get("state", "open"),
        title=item.get("title", ""),
        html_url=item.get("html_url", ""),
        created_at=item.get("created_at"),
        updated_at=item.get("updated_at"),
    )


class GitHubPort(RepositoryPort):
    """Repository port backed by the GitHub REST and GraphQL APIs."""

    @override
    async def fetch_reviews(self, owner: str, repo: str, pull_number: int) -> list[RawReview]:
        raw = await github_api.rest(
            f"/repos/{owner}/{repo}/pulls/{pull_number}/reviews",
            paginate=True,
            per_page=_PER_PAGE,
        )
        return [review_from_api(item) for item in raw]

    @override
    async def fetch_comments(self, owner: str, repo: str, pull_number: int) -> list[RawComment]:
        raw = await github_api.rest(
            f"/repos/{owner}/{repo}/pulls/{pull_number}/comments",
            paginate=True,
            per_page=_PER_PAGE,
        )
        return [comment_from_api(item) for item in raw]

    @override
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
        raw = await github_api.rest(
            f"/repos/{owner}/{repo}/pulls",
            state=state,
            sort=sort,
            direction=direction,
            per_page=per_page,
        )
        return [pull_request_from_api(item) for item in raw or []]

    @override
    async def post_issue_comment(self, owner: str, repo: str, pull_number: int, body: str) -> None:
        await github_api.rest(f"/repos/{owner}/{repo}/issues/{pull_number}/comments", method="POST", body=body)

    @property
    @override
    def supports_reactions(self) -> bool:
        return True

    @override
    async def add_reaction(self, owner: str, repo: str, comment_id: int, content: str) -> None:
        await github_api.rest(
            f"/repos/{owner}/{repo}/pulls/comments/{comment_id}/reactions",
            method="POST",
            content=content,
        )

    async def find_thread_id(self, owner: str, repo: str, pull_number: int, comment_id: int) -> str | None:
        """Node ID of the review thread containing *comment_id*, if any."""
        cursor: str | None = None
        while True:
            variables: dict[str, Any] = {"owner": owner, "repo": repo, "pr": pull_number}
            if cursor:
                variables["cursor"] = cursor
            result = await github_api.graphql(_THREADS_QUERY, variables=variables)
            repository = (result.get("data") or {}).get("repository") or {}
            pr_data = repository.get("pullRequest") or {}
            threads = pr_data.get("reviewThreads") or {}

            for thread in threads.get("nodes", []):
                comment_ids = {node.get("databaseId") for node in thread.get("comments", {}).get("nodes", [])}
                if comment_id in comment_ids:
                    return thread["id"]

            page_info = threads.get("pageInfo", {})
            if page_info.get("hasNextPage") and page_info.get("endCursor"):
                cursor = page_info["endCursor"]
            else:
                return None

    @override
    async def set_conversation_resolved(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        comment_id: int,
        *,
        resolved: bool,
    ) -> None:
        thread_id = await self.find_thread_id(owner, repo, pull_number, comment_id)
        if thread_id is None:
            msg = f"No review thread found for comment {comment_id} on PR #{pull_number}"
            raise UnsupportedCapabilityError(msg)

        mutation, field = (
            (_RESOLVE_THREAD_MUTATION, "resolveReviewThread")
            if resolved
            else (_UNRESOLVE_THREAD_MUTATION, "unresolveReviewThread")
        )
        logger.debug("%s %s for comment %d", field, thread_id, comment_id)
        result = await github_api.graphql(mutation, variables={"threadId": thread_id})

        thread_data = (result.get("data") or {}).get(field, {}).get("thread") or {}
        if thread_data.get("isResolved") is not resolved:
            msg = f"GitHub did not confirm {field} for thread {thread_id}"
            raise github_api.GitHubError(msg)

    @override
    async def validate_credentials(self) -> CredentialCheck:
        return await github_api.validate_token()
