"""Marker classifier: maps CodeRabbit marker phrases to (category, severity)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from coderabbitmcp.models import Severity

_VARIATION_SELECTOR = "\ufe0f"

DEFAULT_CATEGORY = "General"


class Classification(NamedTuple):
    category: str
    severity: Severity


@dataclass(frozen=True, slots=True)
class MarkerRule:
    """A marker phrase and what it means.

    CodeRabbit writes markers either bare (``⚠️ Potential issue``) or
    italicized (``_⚠️ Potential issue_``); both count as the same marker.
    """

    glyph: str
    label: str
    category: str
    severity: Severity

    @property
    def phrase(self) -> str:
        return f"{self.glyph} {self.label}"

    def matches(self, normalized_text: str) -> bool:
        phrase = _normalize(self.phrase)
        return phrase in normalized_text or f"_{phrase}_" in normalized_text


# Priority order. The first rule that matches anywhere in the text wins,
# even if a later rule's marker appears earlier in the text.
MARKER_RULES: tuple[MarkerRule, ...] = (
    MarkerRule("⚠️", "Potential issue", "Potential Issue", Severity.WARNING),
    MarkerRule("🛠️", "Refactor suggestion", "Refactor Suggestion", Severity.SUGGESTION),
    MarkerRule("🔒", "Security", "Security", Severity.ERROR),
    MarkerRule("🧹", "Nitpick", "Nitpick", Severity.INFO),
)


def _normalize(text: str) -> str:
    return text.replace(_VARIATION_SELECTOR, "")


# Bare glyphs (without the emoji variation selector) used to spot marker lines.
MARKER_GLYPHS: tuple[str, ...] = tuple(_normalize(rule.glyph) for rule in MARKER_RULES)


def classify(text: str) -> Classification:
    """Return the classification of the highest-priority marker present in *text*.

    Falls back to ``("General", info)`` when no marker is present.
    """
    normalized = _normalize(text)
    for rule in MARKER_RULES:
        if rule.matches(normalized):
            return Classification(rule.category, rule.severity)
    return Classification(DEFAULT_CATEGORY, Severity.INFO)


def has_marker_glyph(line: str) -> bool:
    """Whether *line* contains any recognized marker glyph."""
    normalized = _normalize(line)
    return any(glyph in normalized for glyph in MARKER_GLYPHS)
