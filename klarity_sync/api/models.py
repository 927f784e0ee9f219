"""Klarity API response dataclasses and the response schema.

WHY: The notes endpoint returns loosely typed JSON. Typed, immutable
dataclasses make the fields the rest of the cycle depends on explicit, and
a JSON schema pins down the response shape we are willing to accept.

HOW: NOTE_SET_SCHEMA describes ``{"notes": [note, ...]}``. The client
validates the decoded body against it with jsonschema before calling
NoteSet.from_dict(), so the factories can assume the shape is right.

RULES:
- Note is frozen; nothing downstream mutates a fetched note
- id and title are required; a numeric id is coerced to its string form
- transcription/createdAt/updatedAt may be absent or null → empty string
- Note order in NoteSet is exactly the server's order
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_OPTIONAL_STRING = {"type": ["string", "null"]}

NOTE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "title"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "title": {"type": "string"},
        "transcription": _OPTIONAL_STRING,
        "createdAt": _OPTIONAL_STRING,
        "updatedAt": _OPTIONAL_STRING,
    },
}

NOTE_SET_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["notes"],
    "properties": {
        "notes": {"type": "array", "items": NOTE_SCHEMA},
    },
}


def _text(value: Optional[Any]) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Note:
    """One Klarity transcription record.

    Attributes:
        id: Opaque unique identifier.
        title: Human title. Not guaranteed unique or filesystem-safe.
        transcription: Free-text body.
        created_at: ISO-8601 creation timestamp, as sent by the server.
        updated_at: ISO-8601 last-update timestamp, as sent by the server.
    """

    id: str
    title: str
    transcription: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Note:
        """Parse a Note from one element of the ``notes`` array."""
        return cls(
            id=_text(data.get("id")),
            title=_text(data.get("title")),
            transcription=_text(data.get("transcription")),
            created_at=_text(data.get("createdAt")),
            updated_at=_text(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class NoteSet:
    """All notes returned by one fetch, in server order."""

    notes: List[Note] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.notes)

    def __iter__(self):
        return iter(self.notes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> NoteSet:
        """Parse the full response body. Assumes NOTE_SET_SCHEMA already passed."""
        return cls(notes=[Note.from_dict(n) for n in data["notes"]])
