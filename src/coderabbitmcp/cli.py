"""CLI for coderabbitmcp, built on cyclopts (same framework as FastMCP's CLI)."""

from __future__ import annotations

import asyncio
import os
import sys
from typing import TYPE_CHECKING

import cyclopts

if TYPE_CHECKING:
    from coderabbitmcp.config import Config

app = cyclopts.App(
    name="coderabbitmcp",
    help="coderabbitmcp: CodeRabbit review parsing MCP server.",
)


@app.default
def serve() -> None:
    """Run the coderabbitmcp MCP server over stdio (default command)."""
    from coderabbitmcp.server import mcp  # noqa: PLC0415

    mcp.run()


@app.command(name="check-env")
def check_env() -> None:
    """Print where the GitHub token comes from, validate it, and show the active config."""
    from coderabbitmcp import github_api  # noqa: PLC0415
    from coderabbitmcp.config import load_config  # noqa: PLC0415
    from coderabbitmcp.github_port import GitHubPort  # noqa: PLC0415

    print("coderabbitmcp check-env")
    print("=" * 40)

    print("\nGitHub token sources (first one set wins):\n")
    for name in github_api.TOKEN_ENV_VARS:
        value = os.environ.get(name)
        print(f"  {name} = {_mask_value(value) if value else '(not set)'}")
    source = github_api.token_source()
    print(f"\n  Using: {source or 'gh auth token (fallback)'}")

    print("\n" + "-" * 40)
    print("Validating configuration...\n")
    try:
        config, config_path = load_config()
    except ValueError as exc:
        print(f"❌ Configuration error: {exc}")
        sys.exit(1)

    print(f"  File: {config_path or '(none, using defaults)'}")
    _print_config_summary(config)

    print("-" * 40)
    print("Checking GitHub credentials...\n")
    check = asyncio.run(GitHubPort().validate_credentials())
    if check.valid:
        print(f"  ✅ Token valid for: {check.user}")
        print(f"  Scopes: {', '.join(check.scopes) or '(fine-grained token, none reported)'}")
    else:
        print("  ❌ Token missing or rejected by GitHub")
        print(f"  Create one: {github_api.TOKEN_CREATE_URL}")
    print()


@app.command(name="config")
def config_cmd(*, init: bool = False, clean: bool = False) -> None:
    """Manage the .coderabbitmcp.toml configuration file.

    Parameters
    ----------
    init
        Write a commented template into the current directory.
    clean
        Remove keys the server does not recognize (formatting is preserved).
    """
    from coderabbitmcp.config import clean_config, init_config  # noqa: PLC0415

    if init == clean:
        print("Specify exactly one of --init or --clean")
        sys.exit(2)
    if init:
        init_config()
    else:
        clean_config()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_MASK_MIN_LENGTH = 4


def _mask_value(value: str) -> str:
    """Mask a secret, keeping two characters at each end."""
    if len(value) > _MASK_MIN_LENGTH:
        return value[:2] + "*" * (len(value) - _MASK_MIN_LENGTH) + value[-2:]
    return "****"


def _print_config_summary(config: Config) -> None:
    """Print a human-readable config summary."""
    print(f"  Bot logins: {', '.join(config.bot.logins)}")
    print(f"  Proximity window: {config.correlation.proximity_window} lines")
    print(f"  Missing anchor line: {config.correlation.missing_anchor_line}")
    print(f"  Max PRs searched: {config.search.max_pull_requests}")
    print()
