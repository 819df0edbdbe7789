"""Section walker: collapsible ``<details>`` sections of a review body → classified entries."""

from __future__ import annotations

from dataclasses import dataclass

from coderabbitmcp.models import ClassifiedEntry
from coderabbitmcp.parsing import blocks, metadata
from coderabbitmcp.parsing.descriptions import SECTION_LINE_CAP, synthesize
from coderabbitmcp.parsing.markers import classify
from coderabbitmcp.parsing.scanner import BLOCKQUOTE_CLOSE, DETAILS_CLOSE, DETAILS_OPEN, first_summary

# Sections CodeRabbit adds around the findings that never carry one.
HOUSEKEEPING_CATEGORIES: tuple[str, ...] = (
    "Commits",
    "Files ignored",
    "Files selected for processing",
    "Configuration",
    "Additional context used",
)


@dataclass(frozen=True, slots=True)
class Section:
    category: str
    text: str


def is_housekeeping(category: str) -> bool:
    return any(label in category for label in HOUSEKEEPING_CATEGORIES)


def split_sections(body: str) -> list[Section]:
    """Closed, labelled, non-housekeeping sections in document order.

    Splitting on the opening tag flattens nesting, so an inner section
    becomes its own fragment. Fragments without a closing tag (truncated
    bodies) or without a ``<summary>`` are dropped silently.
    """
    sections: list[Section] = []
    for fragment in body.split(DETAILS_OPEN):
        if DETAILS_CLOSE not in fragment:
            continue
        category = first_summary(fragment)
        if category is None or is_housekeeping(category):
            continue
        sections.append(Section(category, fragment))
    return sections


def classify_block(category: str, text: str) -> ClassifiedEntry | None:
    """Build the entry for one block, or ``None`` when it carries no content.

    The marker only decides severity; the entry keeps the section label as
    its category.
    """
    severity = classify(text).severity
    ai_prompt = blocks.ai_prompt(text)
    suggestion = blocks.committable_suggestion(text)
    file_path = metadata.inline_file_path(text)
    description = synthesize(text, SECTION_LINE_CAP, category, drop_rules=True)

    if not (ai_prompt or suggestion or file_path) and description == category:
        return None

    return ClassifiedEntry(
        category=category,
        severity=severity,
        description=description,
        ai_prompt=ai_prompt,
        committable_suggestion=suggestion,
        file_path=file_path,
        line_range=metadata.inline_line_range(text),
    )


def walk_detailed(body: str) -> list[ClassifiedEntry]:
    """One entry per non-blank ``</blockquote>``-delimited block of each section."""
    entries: list[ClassifiedEntry] = []
    for section in split_sections(body):
        for block in section.text.split(BLOCKQUOTE_CLOSE):
            if not block.strip():
                continue
            entry = classify_block(section.category, block)
            if entry is not None:
                entries.append(entry)
    return entries


def walk_summary(body: str) -> list[ClassifiedEntry]:
    """At most one entry per section, classifying each section as a whole."""
    entries: list[ClassifiedEntry] = []
    for section in split_sections(body):
        entry = classify_block(section.category, section.text)
        if entry is not None:
            entries.append(entry)
    return entries
