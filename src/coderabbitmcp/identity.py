"""Bot identity: which GitHub logins count as CodeRabbit."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_BOT_LOGINS: tuple[str, ...] = ("coderabbitai[bot]",)


@dataclass(frozen=True, slots=True)
class BotIdentity:
    """Pure predicate over a configured set of bot logins.

    Matching is exact after case folding and trimming, so a human named
    ``coderabbit-fan`` is never mistaken for the bot.
    """

    logins: tuple[str, ...] = DEFAULT_BOT_LOGINS
    _normalized: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_normalized", frozenset(_normalize(login) for login in self.logins))

    def identify(self, author: str | None) -> bool:
        """Return True if *author* is one of the bot's logins."""
        if not author:
            return False
        return _normalize(author) in self._normalized


def _normalize(login: str) -> str:
    return login.strip().lower()
