"""Tests for parsing whole CodeRabbit review bodies."""

from __future__ import annotations

from coderabbitmcp.models import Severity
from coderabbitmcp.parsing import parse_review
from coderabbitmcp.parsing.sections import is_housekeeping, split_sections

REVIEW_BODY = """\
**Actionable comments posted: 9**

<details>
<summary>🧹 Nitpick comments (1)</summary>

🧹 Nitpick: tidy `src/app.js` on line 4.

Prefer a named constant here.

<summary>🤖 Prompt for AI Agents</summary>

```
Fix the bug
```

</details>

<details>
<summary>📒 Files selected for processing (1)</summary>

* `a/b.js`

</details>
"""

TWO_BLOCK_SECTION = """\
<details>
<summary>⚠️ Outside diff range comments (2)</summary><blockquote>

`src/a.py` lines 3-5: _⚠️ Potential issue_ Missing await.

</blockquote>

`src/b.py` line 9: _🛠️ Refactor suggestion_ Extract a helper.

</blockquote></details>
"""


class TestParseReview:
    def test_round_trip(self):
        parsed = parse_review(REVIEW_BODY)

        assert parsed.actionable_comments == 9
        assert parsed.nitpick_comments == 1
        assert parsed.files_reviewed == ["a/b.js"]
        assert len(parsed.entries) == 1
        entry = parsed.entries[0]
        assert entry.category == "🧹 Nitpick comments (1)"
        assert entry.severity is Severity.INFO
        assert entry.ai_prompt == "Fix the bug"
        assert entry.description == "Prefer a named constant here. Fix the bug"
        assert entry.file_path == "src/app.js"
        assert entry.line_range == "4"

    def test_is_deterministic(self):
        assert parse_review(REVIEW_BODY) == parse_review(REVIEW_BODY)

    def test_empty_body_has_defaults(self):
        parsed = parse_review("")
        assert parsed.actionable_comments == 0
        assert parsed.entries == []
        assert parsed.files_reviewed == []
        assert parsed.configuration_used == "Unknown"
        assert parsed.review_profile == "Unknown"
        assert parsed.summary == ""

    def test_truncated_section_is_dropped(self):
        body = "<details>\n<summary>⚠️ Potential issue</summary>\n\nCut off mid-sent"
        assert parse_review(body).entries == []

    def test_detailed_splits_blocks(self):
        entries = parse_review(TWO_BLOCK_SECTION).entries
        assert [e.file_path for e in entries] == ["src/a.py", "src/b.py"]
        assert [e.severity for e in entries] == [Severity.WARNING, Severity.SUGGESTION]
        assert entries[0].line_range == "3-5"
        assert all(e.category == "⚠️ Outside diff range comments (2)" for e in entries)

    def test_summary_variant_one_entry_per_section(self):
        entries = parse_review(TWO_BLOCK_SECTION, detailed=False).entries
        assert len(entries) == 1
        # Whole-section classification: the first rule in priority order wins
        assert entries[0].severity is Severity.WARNING
        assert entries[0].file_path == "src/a.py"

    def test_section_without_content_is_skipped(self):
        body = "<details>\n<summary>Walkthrough</summary>\n</details>\n"
        assert parse_review(body).entries == []

    def test_fence_only_section_is_kept(self):
        body = "<details>\n<summary>Walkthrough</summary>\n\n```\nAdds retry logic\n```\n\n</details>\n"
        [entry] = parse_review(body).entries
        assert entry.category == "Walkthrough"
        assert entry.description == "Adds retry logic"


class TestSections:
    def test_housekeeping_substring_match(self):
        assert is_housekeeping("📥 Commits")
        assert is_housekeeping("🔇 Additional comments (3)") is False
        assert is_housekeeping("📒 Files selected for processing (4)")

    def test_split_skips_unlabelled(self):
        assert split_sections("<details>\nno summary\n</details>") == []
