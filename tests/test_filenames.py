"""Tests for title → filename sanitizing."""

from __future__ import annotations

import pytest

from klarity_sync.core.filenames import (
    FORBIDDEN_FILENAME_CHARS,
    note_filename,
    sanitize_filename,
)


class TestSanitizeFilename:
    """Each forbidden character maps 1:1 to a hyphen."""

    @pytest.mark.parametrize("char", list(FORBIDDEN_FILENAME_CHARS))
    def test_each_forbidden_char(self, char):
        assert sanitize_filename("a{}b".format(char)) == "a-b"

    def test_all_forbidden_chars(self):
        assert sanitize_filename('\\/:*?"<>|') == "-" * 9

    def test_preserves_length_and_other_chars(self):
        title = 'Q3 plan: "final" <draft> v2/3?'
        out = sanitize_filename(title)
        assert len(out) == len(title)
        for before, after in zip(title, out):
            if before in FORBIDDEN_FILENAME_CHARS:
                assert after == "-"
            else:
                assert after == before
        assert not any(c in out for c in FORBIDDEN_FILENAME_CHARS)

    def test_safe_title_unchanged(self):
        assert sanitize_filename("Weekly sync — notes (2024)") == "Weekly sync — notes (2024)"

    def test_no_trimming(self):
        assert sanitize_filename("  trailing dot. ") == "  trailing dot. "

    def test_empty(self):
        assert sanitize_filename("") == ""

    def test_different_titles_can_collide(self):
        assert sanitize_filename("a/b") == sanitize_filename("a:b")

    def test_regex_metacharacters_outside_the_set_kept(self):
        assert sanitize_filename("a]^-.+(b)") == "a]^-.+(b)"


class TestNoteFilename:

    def test_appends_md(self):
        assert note_filename("Standup 10:00") == "Standup 10-00.md"
