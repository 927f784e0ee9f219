"""Klarity API client package: async HTTP access to the notes endpoint.

WHY: The sync cycle only needs one remote operation, fetching the note set,
but it needs every failure classified. This package keeps all HTTP details
behind KlarityClient.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Responses are validated
with jsonschema and parsed into the frozen dataclasses in models.py.

RULES:
- All HTTP calls go through KlarityClient (no direct httpx usage elsewhere)
- Authentication is a static Bearer token from the settings store
"""

from klarity_sync.api.client import KlarityClient, fetch_notes
from klarity_sync.api.models import Note, NoteSet

__all__ = ["KlarityClient", "Note", "NoteSet", "fetch_notes"]
