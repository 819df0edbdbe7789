"""Tests for the github_api module (httpx-based GitHub client)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx
from httpx import Response

from coderabbitmcp import github_api
from coderabbitmcp.errors import RemoteFailureError
from coderabbitmcp.github_api import (
    _HTTP_FORBIDDEN,
    _HTTP_UNAUTHORIZED,
    GitHubAuthError,
    GitHubError,
    _parse_next_link,
    _raise_for_status,
    _resolve_token_sync,
    graphql,
    rest,
    token_source,
    validate_token,
)


@pytest.fixture
def token(monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "tok_test")


def _clear_token_env(monkeypatch) -> None:
    for name in github_api.TOKEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Error types
# ---------------------------------------------------------------------------


class TestGitHubAuthError:
    def test_default_message_contains_setup_url(self):
        err = GitHubAuthError()
        assert "GH_TOKEN" in str(err)
        assert "GITHUB_PAT" in str(err)
        assert "github.com/settings/tokens" in str(err)

    def test_detail_prepended(self):
        err = GitHubAuthError("Access denied")
        assert str(err).startswith("Access denied")

    def test_is_remote_failure(self):
        assert isinstance(GitHubAuthError(), RemoteFailureError)
        assert GitHubAuthError().status_code == _HTTP_UNAUTHORIZED


# ---------------------------------------------------------------------------
# Token resolution
# ---------------------------------------------------------------------------


class TestResolveTokenSync:
    def test_env_order(self, monkeypatch):
        _clear_token_env(monkeypatch)
        monkeypatch.setenv("GITHUB_PAT", "tok_pat")
        monkeypatch.setenv("GITHUB_TOKEN", "tok_github")
        assert _resolve_token_sync() == "tok_github"
        assert token_source() == "GITHUB_TOKEN"

    def test_pat_used_last(self, monkeypatch):
        _clear_token_env(monkeypatch)
        monkeypatch.setenv("GITHUB_PAT", "tok_pat")
        assert _resolve_token_sync() == "tok_pat"

    def test_falls_back_to_gh_auth_token(self, monkeypatch):
        _clear_token_env(monkeypatch)
        mock_result = MagicMock()
        mock_result.returncode = 0
        mock_result.stdout = "ghp_fallback\n"
        with patch("subprocess.run", return_value=mock_result):
            assert _resolve_token_sync() == "ghp_fallback"
        assert token_source() is None

    def test_returns_none_when_gh_not_found(self, monkeypatch):
        _clear_token_env(monkeypatch)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert _resolve_token_sync() is None

    def test_returns_none_when_gh_fails(self, monkeypatch):
        _clear_token_env(monkeypatch)
        mock_result = MagicMock()
        mock_result.returncode = 1
        mock_result.stdout = ""
        with patch("subprocess.run", return_value=mock_result):
            assert _resolve_token_sync() is None


class TestGetToken:
    async def test_raises_when_no_token(self, monkeypatch):
        _clear_token_env(monkeypatch)
        with patch("subprocess.run", side_effect=FileNotFoundError), pytest.raises(GitHubAuthError):
            await github_api.get_token()

    async def test_resolved_once(self, monkeypatch):
        monkeypatch.setenv("GH_TOKEN", "tok_first")
        assert await github_api.get_token() == "tok_first"
        monkeypatch.setenv("GH_TOKEN", "tok_second")
        assert await github_api.get_token() == "tok_first"


# ---------------------------------------------------------------------------
# _raise_for_status
# ---------------------------------------------------------------------------


class TestRaiseForStatus:
    def test_success_does_not_raise(self):
        _raise_for_status(Response(200))

    def test_401_raises_auth_error(self):
        with pytest.raises(GitHubAuthError):
            _raise_for_status(Response(401))

    def test_403_rate_limit_raises_github_error(self):
        with pytest.raises(GitHubError, match="rate limit") as excinfo:
            _raise_for_status(Response(403, json={"message": "API rate limit exceeded for ..."}))
        assert not isinstance(excinfo.value, GitHubAuthError)

    def test_403_forbidden_raises_auth_error(self):
        with pytest.raises(GitHubAuthError, match="forbidden"):
            _raise_for_status(Response(403, json={"message": "Forbidden"}))

    def test_404_keeps_status(self):
        with pytest.raises(GitHubError, match="404") as excinfo:
            _raise_for_status(Response(404, json={"message": "Not Found"}))
        assert excinfo.value.status_code == 404

    def test_non_json_body_uses_text(self):
        with pytest.raises(GitHubError, match="Unprocessable"):
            _raise_for_status(Response(422, text="Unprocessable"))

    def test_constants_are_correct(self):
        assert _HTTP_UNAUTHORIZED == 401
        assert _HTTP_FORBIDDEN == 403


class TestParseNextLink:
    def test_parses_next_link(self):
        header = '<https://api.github.com/repos?page=2>; rel="next", <https://api.github.com/repos?page=5>; rel="last"'
        assert _parse_next_link(header) == "https://api.github.com/repos?page=2"

    def test_returns_none_when_no_next(self):
        assert _parse_next_link('<https://api.github.com/repos?page=1>; rel="prev"') is None

    def test_returns_none_for_empty_string(self):
        assert _parse_next_link("") is None


# ---------------------------------------------------------------------------
# graphql
# ---------------------------------------------------------------------------


class TestGraphQL:
    @pytest.mark.usefixtures("token")
    async def test_successful_query(self):
        with respx.mock:
            route = respx.post("https://api.github.com/graphql").mock(
                return_value=Response(200, json={"data": {"viewer": {"login": "user"}}}),
            )
            result = await graphql("{ viewer { login } }")
            request = route.calls.last.request

        assert result["data"]["viewer"]["login"] == "user"
        assert request.headers["Authorization"] == "Bearer tok_test"
        assert request.headers["User-Agent"] == "coderabbitmcp"

    @pytest.mark.usefixtures("token")
    async def test_graphql_errors_raise(self):
        with respx.mock:
            respx.post("https://api.github.com/graphql").mock(
                return_value=Response(200, json={"errors": [{"message": "Not found"}]}),
            )
            with pytest.raises(GitHubError, match="GraphQL error: Not found"):
                await graphql("{ viewer { login } }")

    @pytest.mark.usefixtures("token")
    async def test_transport_error_is_wrapped(self):
        with respx.mock:
            respx.post("https://api.github.com/graphql").mock(side_effect=httpx.ConnectError("refused"))
            with pytest.raises(GitHubError, match="ConnectError"):
                await graphql("{ viewer { login } }")


# ---------------------------------------------------------------------------
# rest
# ---------------------------------------------------------------------------


class TestRest:
    @pytest.mark.usefixtures("token")
    async def test_get_request_sends_params(self):
        with respx.mock:
            route = respx.get("https://api.github.com/repos/o/r/pulls").mock(
                return_value=Response(200, json=[{"number": 1}]),
            )
            result = await rest("/repos/o/r/pulls", state="all")
            request = route.calls.last.request

        assert result == [{"number": 1}]
        assert request.url.params["state"] == "all"

    @pytest.mark.usefixtures("token")
    async def test_post_request(self):
        with respx.mock:
            route = respx.post("https://api.github.com/repos/o/r/issues/1/comments").mock(
                return_value=Response(201, json={"id": 42}),
            )
            result = await rest("/repos/o/r/issues/1/comments", method="POST", body="hello")
            request = route.calls.last.request

        assert result == {"id": 42}
        assert json.loads(request.content) == {"body": "hello"}

    @pytest.mark.usefixtures("token")
    async def test_paginate_follows_link_header(self):
        page2_url = "https://api.github.com/repos/o/r/pulls?page=2"
        responses = [
            Response(200, json=[{"number": 1}], headers={"link": f'<{page2_url}>; rel="next"'}),
            Response(200, json=[{"number": 2}]),
        ]

        with respx.mock:
            respx.get(url__regex=r"https://api\.github\.com/repos/o/r/pulls").mock(side_effect=responses)
            result = await rest("/repos/o/r/pulls", paginate=True)

        assert result == [{"number": 1}, {"number": 2}]

    @pytest.mark.usefixtures("token")
    async def test_empty_response_returns_none(self):
        with respx.mock:
            respx.delete("https://api.github.com/repos/o/r/issues/1").mock(
                return_value=Response(204, content=b""),
            )
            result = await rest("/repos/o/r/issues/1", method="DELETE")

        assert result is None

    @pytest.mark.usefixtures("token")
    async def test_timeout_is_wrapped(self):
        with respx.mock:
            respx.get("https://api.github.com/repos/o/r/pulls").mock(side_effect=httpx.ReadTimeout("slow"))
            with pytest.raises(GitHubError, match="GitHub request failed"):
                await rest("/repos/o/r/pulls")


# ---------------------------------------------------------------------------
# validate_token
# ---------------------------------------------------------------------------


class TestValidateToken:
    @pytest.mark.usefixtures("token")
    async def test_valid_with_scopes(self):
        with respx.mock:
            respx.get("https://api.github.com/user").mock(
                return_value=Response(200, json={"login": "octocat"}, headers={"x-oauth-scopes": "repo, read:org"}),
            )
            check = await validate_token()

        assert check.valid is True
        assert check.user == "octocat"
        assert check.scopes == ["repo", "read:org"]

    @pytest.mark.usefixtures("token")
    async def test_rejected_token(self):
        with respx.mock:
            respx.get("https://api.github.com/user").mock(return_value=Response(401))
            check = await validate_token()

        assert check.valid is False
        assert check.scopes == []

    async def test_missing_token(self, monkeypatch):
        _clear_token_env(monkeypatch)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            check = await validate_token()
        assert check.valid is False
