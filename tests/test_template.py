"""Tests for note template rendering."""

from __future__ import annotations

from klarity_sync.api.models import Note
from klarity_sync.config import DEFAULT_NOTE_TEMPLATE
from klarity_sync.core.template import TEMPLATE_TOKENS, render_note


def _note(**overrides) -> Note:
    fields = dict(
        id="1",
        title="A",
        transcription="x",
        created_at="2024-01-01T00:00:00Z",
        updated_at="2024-01-01T00:00:00Z",
    )
    fields.update(overrides)
    return Note(**fields)


class TestRenderNote:
    """render_note() substitutes known tokens and leaves the rest alone."""

    def test_default_template(self):
        out = render_note(DEFAULT_NOTE_TEMPLATE, _note())
        assert out.startswith("---\n")
        assert "id: 1\n" in out
        assert "created: 2024-01-01T00:00:00Z\n" in out
        assert "updated: 2024-01-01T00:00:00Z\n" in out
        assert "\n# A\n" in out
        assert "## Transcription\nx\n" in out

    def test_every_occurrence_replaced(self):
        out = render_note("{{title}} / {{title}} / {{title}}", _note(title="Standup"))
        assert out == "Standup / Standup / Standup"

    def test_all_tokens(self):
        template = " ".join("{{%s}}" % t for t in TEMPLATE_TOKENS)
        out = render_note(template, _note(id="n9", title="T", transcription="body",
                                          created_at="c", updated_at="u"))
        assert out == "n9 T c u body"

    def test_unknown_token_untouched(self):
        out = render_note("{{title}} {{author}} {{ title }}", _note())
        assert out == "A {{author}} {{ title }}"

    def test_missing_fields_render_empty(self):
        note = _note(transcription="", created_at="", updated_at="")
        assert render_note("[{{transcription}}|{{createdAt}}|{{updatedAt}}]", note) == "[||]"

    def test_value_containing_token_is_not_reexpanded(self):
        note = _note(title="Meeting", transcription="say {{title}} out loud")
        assert render_note("{{transcription}}", note) == "say {{title}} out loud"

    def test_idempotent(self):
        note = _note(transcription="line 1\nline 2")
        assert render_note(DEFAULT_NOTE_TEMPLATE, note) == render_note(DEFAULT_NOTE_TEMPLATE, note)

    def test_template_without_tokens(self):
        assert render_note("static text", _note()) == "static text"

    def test_backslashes_in_values_are_literal(self):
        # re.sub must not interpret \1 or \g<0> in field values
        note = _note(transcription=r"C:\new\1 \g<0>")
        assert render_note("{{transcription}}", note) == r"C:\new\1 \g<0>"
