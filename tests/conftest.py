"""Global test fixtures for coderabbitmcp."""

from __future__ import annotations

import pytest

from coderabbitmcp import github_api
from coderabbitmcp.config import Config, set_config


@pytest.fixture(autouse=True)
def _default_config():
    """Reset config and the cached GitHub token around every test.

    A developer's own .coderabbitmcp.toml or GH_TOKEN must never leak into
    test expectations.
    """
    set_config(Config())
    github_api.reset_token()
    yield
    set_config(Config())
    github_api.reset_token()
