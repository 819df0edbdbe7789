"""Server configuration.

Loads ``.coderabbitmcp.toml`` from the project root (walking up to ``.git``),
validates with Pydantic, and falls back to defaults so zero-config works.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from coderabbitmcp.correlation import DEFAULT_MISSING_ANCHOR_LINE, DEFAULT_PROXIMITY_WINDOW
from coderabbitmcp.identity import DEFAULT_BOT_LOGINS, BotIdentity

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".coderabbitmcp.toml"


class BotConfig(BaseModel):
    """Which GitHub accounts count as the CodeRabbit bot."""

    model_config = ConfigDict(extra="ignore")

    logins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BOT_LOGINS),
        min_length=1,
        description="Bot logins, matched case-insensitively",
    )

    @field_validator("logins")
    @classmethod
    def _reject_blank_logins(cls, logins: list[str]) -> list[str]:
        if any(not login.strip() for login in logins):
            msg = "[bot] logins must not contain empty strings"
            raise ValueError(msg)
        return logins


class CorrelationConfig(BaseModel):
    """How related comments are found."""

    model_config = ConfigDict(extra="ignore")

    proximity_window: int = Field(
        default=DEFAULT_PROXIMITY_WINDOW,
        ge=0,
        description="Max line distance (inclusive) between related comments on the same file",
    )
    missing_anchor_line: int = Field(
        default=DEFAULT_MISSING_ANCHOR_LINE,
        ge=0,
        description="Line assumed for comments without a line anchor",
    )


class SearchConfig(BaseModel):
    """How far back comment lookups search."""

    model_config = ConfigDict(extra="ignore")

    max_pull_requests: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Most recently updated PRs scanned when locating a comment by ID",
    )


class Config(BaseModel):
    """Top-level coderabbitmcp configuration."""

    model_config = ConfigDict(extra="ignore")

    bot: BotConfig = Field(default_factory=BotConfig, description="Bot identity settings")
    correlation: CorrelationConfig = Field(default_factory=CorrelationConfig, description="Related-comment settings")
    search: SearchConfig = Field(default_factory=SearchConfig, description="Comment lookup settings")

    def identity(self) -> BotIdentity:
        return BotIdentity(tuple(self.bot.logins))


def _collect_unknown_keys(
    data: dict[str, Any],
    model_cls: type[BaseModel],
    prefix: str = "",
) -> list[str]:
    """Recursively find keys in *data* that don't match any field in *model_cls*.

    Returns dotted key paths like ``search.max_prs``.
    """
    known = set(model_cls.model_fields)
    unknown: list[str] = []

    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if key not in known:
            unknown.append(dotted)
            continue
        annotation = model_cls.model_fields[key].annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel) and isinstance(value, dict):
            unknown.extend(_collect_unknown_keys(value, annotation, prefix=f"{dotted}."))

    return unknown


def _find_config_file(start: Path) -> Path | None:
    """Walk up from *start* looking for ``.coderabbitmcp.toml``, stopping at ``.git`` root."""
    current = start.resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        if (current / ".git").exists():
            return None
        current = current.parent


def _parse(config_path: Path) -> tuple[Config, dict[str, Any]]:
    raw = config_path.read_text(encoding="utf-8")
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_path}: {exc}"
        raise ValueError(msg) from exc

    try:
        config = Config.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid config in {config_path}: {exc}"
        raise ValueError(msg) from exc
    return config, data


def load_config(cwd: str | Path | None = None) -> tuple[Config, Path | None]:
    """Load configuration from ``.coderabbitmcp.toml``.

    Walks up from *cwd* (defaulting to the current directory) looking for the
    config file. If not found, returns a ``Config`` with all defaults.

    Returns:
        (config, config_path). The path is needed by ``set_config`` to enable
        mtime-based hot-reload.

    Raises ``ValueError`` on invalid TOML or validation errors so the server
    can refuse to start with a broken config.
    """
    start = Path(cwd) if cwd else Path.cwd()
    config_path = _find_config_file(start)

    if config_path is None:
        logger.info("No %s found, using defaults", CONFIG_FILENAME)
        return Config(), None

    logger.info("Loading config from %s", config_path)
    config, data = _parse(config_path)

    for key in _collect_unknown_keys(data, Config):
        logger.warning(
            "Unknown config key '%s' in %s, run 'coderabbitmcp config --clean' to remove it",
            key,
            config_path,
        )

    return config, config_path


# -- Hot-reloading config with mtime cache ------------------------------------


class _ConfigState:
    """Tracks the active config, its file path, and mtime for hot-reload."""

    __slots__ = ("config", "mtime", "path")

    def __init__(self) -> None:
        self.config: Config = Config()
        self.path: Path | None = None
        self.mtime: float | None = None


_state = _ConfigState()


def get_config() -> Config:
    """Return the active configuration, hot-reloading if the file changed.

    If the file was deleted, falls back to defaults. If an edit made it
    invalid, logs a warning and keeps the last good config.
    """
    path = _state.path
    if path is None:
        return _state.config

    try:
        current_mtime = path.stat().st_mtime
    except OSError:
        if _state.mtime is not None:
            logger.warning("%s deleted, falling back to defaults", path.name)
            _state.config = Config()
            _state.mtime = None
        return _state.config

    if current_mtime == _state.mtime:
        return _state.config

    logger.info("Config file changed (mtime %.0f → %.0f), reloading", _state.mtime or 0, current_mtime)
    try:
        new_config, _ = _parse(path)
    except (OSError, ValueError) as exc:
        logger.warning("Invalid config after edit, keeping last good config: %s", exc)
        _state.mtime = current_mtime  # Don't re-check until next change
        return _state.config

    _state.config = new_config
    _state.mtime = current_mtime
    logger.info("Config hot-reloaded successfully")
    return new_config


def set_config(config: Config, *, config_path: Path | None = None) -> None:
    """Set the active configuration (called during server startup).

    If *config_path* is provided, enables hot-reload on subsequent
    ``get_config()`` calls by tracking the file's mtime.
    """
    _state.config = config
    _state.path = config_path
    try:
        _state.mtime = config_path.stat().st_mtime if config_path else None
    except OSError:
        _state.mtime = None


# -- ``coderabbitmcp config`` ---------------------------------------------------

DEFAULT_CONFIG_TEMPLATE = """\
# .coderabbitmcp.toml: configuration for the CodeRabbit MCP server
# All settings are optional. Omitted values use the defaults shown here.
# Place this file in your project root (next to .git/).

[bot]
logins = ["coderabbitai[bot]"]    # Accounts whose reviews and comments are parsed

[correlation]
proximity_window = 10             # Comments this many lines apart on one file are related
missing_anchor_line = 0           # Line assumed for comments without a line anchor

[search]
max_pull_requests = 20            # Recent PRs scanned when looking up a comment by ID (1-100)
"""


def init_config(cwd: Path | None = None) -> Path:
    """Create a new ``.coderabbitmcp.toml`` in the given directory.

    Raises ``SystemExit(1)`` if the file already exists.
    """
    target = (cwd or Path.cwd()) / CONFIG_FILENAME
    if target.exists():
        print(f"Error: {CONFIG_FILENAME} already exists in {target.parent}")  # noqa: T201
        print("Hint: use 'coderabbitmcp config --clean' to drop unknown keys")  # noqa: T201
        raise SystemExit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    print(f"Created {target}")  # noqa: T201
    return target


def _remove_unknown_keys(target: Path) -> list[str]:
    """Remove unknown keys from a config file using tomlkit (style-preserving).

    Returns list of dotted key paths that were removed.
    """
    import tomlkit  # noqa: PLC0415

    raw = target.read_text(encoding="utf-8")
    unknown = _collect_unknown_keys(tomllib.loads(raw), Config)
    if not unknown:
        return []

    doc = tomlkit.loads(raw)
    for dotted in unknown:
        parts = dotted.split(".")
        container: Any = doc
        for part in parts[:-1]:
            container = container[part]
        del container[parts[-1]]

    target.write_text(tomlkit.dumps(doc), encoding="utf-8")
    return unknown


def clean_config(cwd: Path | None = None) -> tuple[Path, list[str]]:
    """Remove unknown keys from an existing ``.coderabbitmcp.toml``.

    Raises ``SystemExit(1)`` if the config file doesn't exist.

    Returns:
        Tuple of (config path, list of removed key paths).
    """
    target = (cwd or Path.cwd()) / CONFIG_FILENAME
    if not target.exists():
        print(f"Error: {CONFIG_FILENAME} not found in {target.parent}")  # noqa: T201
        print("Hint: use 'coderabbitmcp config --init' to create one")  # noqa: T201
        raise SystemExit(1)

    removed = _remove_unknown_keys(target)
    if removed:
        print(f"Removed {len(removed)} unknown key(s) from {target}:")  # noqa: T201
        for key in removed:
            print(f"  - {key}")  # noqa: T201
    else:
        print(f"{CONFIG_FILENAME} is clean, no unknown keys found")  # noqa: T201

    return target, removed
