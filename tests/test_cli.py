"""Tests for the CLI module."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

from coderabbitmcp.cli import _mask_value, check_env, config_cmd
from coderabbitmcp.config import CONFIG_FILENAME
from coderabbitmcp.models import CredentialCheck


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / ".git").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestMaskValue:
    def test_long_value_masked(self):
        result = _mask_value("ghp_abcdefgh")
        assert result.startswith("gh")
        assert result.endswith("gh")
        assert "********" in result
        assert len(result) == len("ghp_abcdefgh")

    def test_short_value(self):
        assert _mask_value("abc") == "****"


class TestCheckEnv:
    @pytest.mark.usefixtures("project")
    def test_valid_token(self, mocker: MockerFixture, monkeypatch, capsys):
        monkeypatch.setenv("GH_TOKEN", "ghp_secretvalue")
        mocker.patch(
            "coderabbitmcp.github_api.validate_token",
            return_value=CredentialCheck(valid=True, scopes=["repo"], user="octocat"),
        )
        check_env()
        out = capsys.readouterr().out

        assert "coderabbitmcp check-env" in out
        assert "Using: GH_TOKEN" in out
        assert "ghp_secretvalue" not in out
        assert "Token valid for: octocat" in out
        assert "Scopes: repo" in out
        assert "(none, using defaults)" in out

    @pytest.mark.usefixtures("project")
    def test_rejected_token(self, mocker: MockerFixture, capsys):
        mocker.patch("coderabbitmcp.github_api.validate_token", return_value=CredentialCheck(valid=False))
        check_env()
        out = capsys.readouterr().out
        assert "Token missing or rejected" in out
        assert "github.com/settings/tokens" in out

    @pytest.mark.usefixtures("project")
    def test_validates_through_port(self, mocker: MockerFixture, capsys):
        validate = mocker.patch(
            "coderabbitmcp.github_port.GitHubPort.validate_credentials",
            return_value=CredentialCheck(valid=True, scopes=[], user="hubot"),
        )
        check_env()
        validate.assert_awaited_once()
        assert "Token valid for: hubot" in capsys.readouterr().out

    def test_invalid_config_exits(self, project: Path, mocker: MockerFixture, capsys):
        (project / CONFIG_FILENAME).write_text("{{broken", encoding="utf-8")
        validate = mocker.patch("coderabbitmcp.github_api.validate_token")
        with pytest.raises(SystemExit) as excinfo:
            check_env()
        assert excinfo.value.code == 1
        assert "Configuration error" in capsys.readouterr().out
        validate.assert_not_called()

    def test_shows_config_summary(self, project: Path, mocker: MockerFixture, capsys):
        (project / CONFIG_FILENAME).write_text("[correlation]\nproximity_window = 3\n", encoding="utf-8")
        mocker.patch("coderabbitmcp.github_api.validate_token", return_value=CredentialCheck(valid=False))
        check_env()
        out = capsys.readouterr().out
        assert "Proximity window: 3 lines" in out
        assert "Bot logins: coderabbitai[bot]" in out


class TestConfigCommand:
    @pytest.mark.usefixtures("project")
    def test_requires_exactly_one_flag(self):
        with pytest.raises(SystemExit) as excinfo:
            config_cmd()
        assert excinfo.value.code == 2
        with pytest.raises(SystemExit):
            config_cmd(init=True, clean=True)

    def test_init_creates_file(self, project: Path):
        config_cmd(init=True)
        assert (project / CONFIG_FILENAME).is_file()

    def test_clean_removes_unknown(self, project: Path, capsys):
        (project / CONFIG_FILENAME).write_text("[search]\nmax_prs = 3\n", encoding="utf-8")
        config_cmd(clean=True)
        assert "search.max_prs" in capsys.readouterr().out
        assert "max_prs" not in (project / CONFIG_FILENAME).read_text(encoding="utf-8")
