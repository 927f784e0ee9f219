"""Klarity Sync: pull Klarity transcriptions into a local Markdown vault.

WHY: Klarity keeps meeting and voice-note transcriptions on its servers.
Users want them as plain Markdown files inside their note vault so they can
link, search, and edit them alongside everything else.

HOW: Four-stage cycle: fetch (API client), render (note template),
write (vault writer), record (settings store). The sync orchestrator drives
the cycle; the scheduler decides when it runs.

RULES:
- One file per note, named after the sanitized note title
- Sync is one-way: remote wins, local files are overwritten
- The settings store is the only owner of persisted configuration
"""

__version__ = "0.1.0"
