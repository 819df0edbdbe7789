"""Tests for the configuration system."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

if TYPE_CHECKING:
    from pathlib import Path

from coderabbitmcp.config import (
    CONFIG_FILENAME,
    DEFAULT_CONFIG_TEMPLATE,
    BotConfig,
    Config,
    SearchConfig,
    _collect_unknown_keys,
    clean_config,
    get_config,
    init_config,
    load_config,
    set_config,
)


def _write(directory: Path, content: str) -> Path:
    path = directory / CONFIG_FILENAME
    path.write_text(content, encoding="utf-8")
    return path


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.bot.logins == ["coderabbitai[bot]"]
        assert config.correlation.proximity_window == 10
        assert config.correlation.missing_anchor_line == 0
        assert config.search.max_pull_requests == 20

    def test_identity_follows_logins(self):
        identity = Config(bot=BotConfig(logins=["Rabbit[bot]"])).identity()
        assert identity.identify("rabbit[bot]")
        assert not identity.identify("coderabbitai[bot]")

    def test_empty_logins_rejected(self):
        with pytest.raises(ValidationError):
            BotConfig(logins=[])

    def test_blank_login_rejected(self):
        with pytest.raises(ValidationError, match="empty strings"):
            BotConfig(logins=["coderabbitai[bot]", "  "])

    @pytest.mark.parametrize("value", [0, 101])
    def test_search_bounds(self, value: int):
        with pytest.raises(ValidationError):
            SearchConfig(max_pull_requests=value)


class TestLoadConfig:
    def test_missing_file_returns_defaults(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        config, path = load_config(cwd=tmp_path)
        assert config == Config()
        assert path is None

    def test_load_valid_toml(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        expected = _write(tmp_path, "[correlation]\nproximity_window = 4\n\n[search]\nmax_pull_requests = 50\n")
        config, path = load_config(cwd=tmp_path)
        assert config.correlation.proximity_window == 4
        assert config.search.max_pull_requests == 50
        assert config.bot.logins == ["coderabbitai[bot]"]
        assert path == expected

    def test_walks_up_to_git_root(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        _write(tmp_path, '[bot]\nlogins = ["rabbit[bot]"]\n')
        subdir = tmp_path / "src" / "deep"
        subdir.mkdir(parents=True)
        config, _ = load_config(cwd=subdir)
        assert config.bot.logins == ["rabbit[bot]"]

    def test_stops_at_git_root(self, tmp_path: Path):
        _write(tmp_path, '[bot]\nlogins = ["rabbit[bot]"]\n')
        project = tmp_path / "project"
        project.mkdir()
        (project / ".git").mkdir()
        config, path = load_config(cwd=project)
        assert path is None
        assert config.bot.logins == ["coderabbitai[bot]"]

    def test_invalid_toml_raises(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        _write(tmp_path, "{{invalid toml")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config(cwd=tmp_path)

    def test_invalid_values_raise(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        _write(tmp_path, "[search]\nmax_pull_requests = 0\n")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config(cwd=tmp_path)

    def test_template_matches_defaults(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        _write(tmp_path, DEFAULT_CONFIG_TEMPLATE)
        config, _ = load_config(cwd=tmp_path)
        assert config == Config()

    def test_warns_on_unknown_keys(self, tmp_path: Path, caplog: pytest.LogCaptureFixture):
        (tmp_path / ".git").mkdir()
        _write(tmp_path, "[search]\nmax_prs = 5\n")
        with caplog.at_level(logging.WARNING, logger="coderabbitmcp.config"):
            load_config(cwd=tmp_path)
        assert any("search.max_prs" in r.message for r in caplog.records)
        assert any("--clean" in r.message for r in caplog.records)


class TestCollectUnknownKeys:
    def test_top_level_unknown(self):
        assert _collect_unknown_keys({"reviewers": {}}, Config) == ["reviewers"]

    def test_nested_unknown(self):
        assert _collect_unknown_keys({"correlation": {"window": 3}}, Config) == ["correlation.window"]

    def test_no_unknowns(self):
        assert _collect_unknown_keys({"bot": {"logins": ["x"]}, "search": {"max_pull_requests": 3}}, Config) == []


class TestHotReload:
    def test_defaults_without_file(self):
        set_config(Config())
        assert get_config() == Config()

    def test_reloads_on_change(self, tmp_path: Path):
        path = _write(tmp_path, "[search]\nmax_pull_requests = 5\n")
        config, _ = load_config(cwd=tmp_path)
        set_config(config, config_path=path)
        assert get_config().search.max_pull_requests == 5

        path.write_text("[search]\nmax_pull_requests = 7\n", encoding="utf-8")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        assert get_config().search.max_pull_requests == 7

    def test_invalid_edit_keeps_last_good(self, tmp_path: Path):
        path = _write(tmp_path, "[search]\nmax_pull_requests = 5\n")
        config, _ = load_config(cwd=tmp_path)
        set_config(config, config_path=path)

        path.write_text("[search]\nmax_pull_requests = 500\n", encoding="utf-8")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        assert get_config().search.max_pull_requests == 5

    def test_deleted_file_falls_back_to_defaults(self, tmp_path: Path):
        path = _write(tmp_path, "[search]\nmax_pull_requests = 5\n")
        config, _ = load_config(cwd=tmp_path)
        set_config(config, config_path=path)

        path.unlink()
        assert get_config() == Config()


class TestInitConfig:
    def test_writes_template(self, tmp_path: Path):
        target = init_config(cwd=tmp_path)
        assert target.read_text(encoding="utf-8") == DEFAULT_CONFIG_TEMPLATE

    def test_refuses_to_overwrite(self, tmp_path: Path):
        _write(tmp_path, "")
        with pytest.raises(SystemExit):
            init_config(cwd=tmp_path)


class TestCleanConfig:
    def test_removes_unknown_keys(self, tmp_path: Path):
        config_file = _write(tmp_path, "# keep me\n[search]\nmax_pull_requests = 5\nmax_prs = 9\n\n[extra]\nx = 1\n")
        _, removed = clean_config(cwd=tmp_path)

        assert set(removed) == {"search.max_prs", "extra"}
        content = config_file.read_text(encoding="utf-8")
        assert "max_prs" not in content
        assert "[extra]" not in content
        assert "max_pull_requests = 5" in content
        assert "# keep me" in content

    def test_nothing_to_remove(self, tmp_path: Path):
        _write(tmp_path, "[search]\nmax_pull_requests = 5\n")
        _, removed = clean_config(cwd=tmp_path)
        assert removed == []

    def test_fails_if_no_config(self, tmp_path: Path):
        with pytest.raises(SystemExit):
            clean_config(cwd=tmp_path)
