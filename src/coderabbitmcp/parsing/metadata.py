"""Metadata extractor: scalar facts from CodeRabbit review bodies.

Each extraction is independent. A missing label never prevents the others
from being found, and every field has a default.
"""

from __future__ import annotations

import re

UNKNOWN = "Unknown"

_ACTIONABLE_RE = re.compile(r"\*\*Actionable comments posted: (\d+)\*\*")
_DUPLICATE_RE = re.compile(r"\u267b\ufe0f? Duplicate comments \((\d+)\)")
_NITPICK_RE = re.compile(r"🧹 Nitpick comments \((\d+)\)")

# Older bodies put the colon inside the bold span, newer ones after it.
_CONFIGURATION_RES = (
    re.compile(r"\*\*Configuration used: (.+?)\*\*"),
    re.compile(r"^\*\*Configuration used\*\*: (.+?)\s*$", re.MULTILINE),
)
_PROFILE_RES = (
    re.compile(r"\*\*Review profile: (.+?)\*\*"),
    re.compile(r"^\*\*Review profile\*\*: (.+?)\s*$", re.MULTILINE),
)

FILES_HEADER = "📒 Files selected for processing"
REVIEW_DETAILS_HEADER = "📜 Review details"

_FILE_BULLET_RE = re.compile(r"^\s*[*-] `([^`]+)`")
_LEADING_TAGS_RE = re.compile(r"^(?:\s*</?[a-zA-Z][^>]*>)*\s*")

_SOURCE_EXTENSIONS = "js|ts|tsx|jsx|py|java|cpp|c|h|go|rs|rb|php|cs|kt|swift"
_INLINE_PATH_RE = re.compile(rf"`([^`]+\.(?:{_SOURCE_EXTENSIONS}))`", re.IGNORECASE)
_LINE_PHRASE_RE = re.compile(r"lines? (\d+(?:-\d+)?)", re.IGNORECASE)


def _count(pattern: re.Pattern[str], body: str) -> int:
    match = pattern.search(body)
    return int(match.group(1)) if match else 0


def _label(patterns: tuple[re.Pattern[str], ...], body: str) -> str:
    for pattern in patterns:
        match = pattern.search(body)
        if match:
            return match.group(1).strip()
    return UNKNOWN


def actionable_count(body: str) -> int:
    return _count(_ACTIONABLE_RE, body)


def duplicate_count(body: str) -> int:
    return _count(_DUPLICATE_RE, body)


def nitpick_count(body: str) -> int:
    return _count(_NITPICK_RE, body)


def configuration_used(body: str) -> str:
    return _label(_CONFIGURATION_RES, body)


def review_profile(body: str) -> str:
    return _label(_PROFILE_RES, body)


def files_reviewed(body: str) -> list[str]:
    """Backticked paths from the bullet list under the 'Files selected for processing' header.

    Blank lines right after the header are skipped; the list ends at the
    next blank line or tag line. Duplicates keep their first position.
    """
    start = body.find(FILES_HEADER)
    if start == -1:
        return []

    lines = body[start:].split("\n")[1:]
    files: list[str] = []
    seen_bullet = False
    for line in lines:
        stripped = line.strip()
        if not stripped:
            if seen_bullet:
                break
            continue
        if stripped.startswith("<"):
            break
        seen_bullet = True
        match = _FILE_BULLET_RE.match(line)
        if match and match.group(1) not in files:
            files.append(match.group(1))
    return files


def summary(body: str) -> str:
    """The paragraph following the 'Review details' header, without leading tags."""
    start = body.find(REVIEW_DETAILS_HEADER)
    if start == -1:
        return ""

    rest = body[start + len(REVIEW_DETAILS_HEADER) :]
    rest = _LEADING_TAGS_RE.sub("", rest, count=1)
    kept: list[str] = []
    for line in rest.split("\n"):
        if not line.strip() or line.lstrip().startswith("<"):
            break
        kept.append(line.strip())
    return "\n".join(kept).strip()


def inline_file_path(text: str) -> str | None:
    """First backticked source-file path in free prose."""
    match = _INLINE_PATH_RE.search(text)
    return match.group(1) if match else None


def inline_line_range(text: str) -> str | None:
    """First 'line N' or 'lines N-M' reference, returned as 'N' or 'N-M'."""
    match = _LINE_PHRASE_RE.search(text)
    return match.group(1) if match else None
