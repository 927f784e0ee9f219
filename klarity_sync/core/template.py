"""Note template rendering with ``{{field}}`` placeholders.

WHY: Users control how a synced note looks in their vault (front matter,
headings, where the transcription goes) by editing a plain-text template.
The renderer turns that template plus one Note into file content.

HOW: A single regex pass finds every ``{{name}}`` token. Known names are
replaced with the note's field value; unknown names are written back
unchanged. Because the scan runs once over the template, a transcription
that happens to contain ``{{title}}`` is never expanded a second time.

RULES:
- Supported tokens: {{id}}, {{title}}, {{createdAt}}, {{updatedAt}}, {{transcription}}
- Every occurrence is replaced, not just the first
- Unknown tokens are left untouched, including their braces
- Missing field values render as the empty string, never an error
- Pure function: same template and note always give the same output
"""

from __future__ import annotations

import re
from typing import Dict

from klarity_sync.api.models import Note

_TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")

TEMPLATE_TOKENS = ("id", "title", "createdAt", "updatedAt", "transcription")
"""Placeholder names the renderer understands, in display order."""


def note_fields(note: Note) -> Dict[str, str]:
    """Map template token names to the note's field values."""
    return {
        "id": note.id or "",
        "title": note.title or "",
        "createdAt": note.created_at or "",
        "updatedAt": note.updated_at or "",
        "transcription": note.transcription or "",
    }


def render_note(template: str, note: Note) -> str:
    """Render a note through the template.

    Args:
        template: Template text with ``{{token}}`` placeholders.
        note: The note supplying field values.

    Returns:
        The rendered file content.
    """
    fields = note_fields(note)

    def _substitute(match: re.Match) -> str:
        return fields.get(match.group(1), match.group(0))

    return _TOKEN_RE.sub(_substitute, template)
