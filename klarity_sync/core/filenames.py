"""Map note titles to filesystem-safe file names.

Each of the characters ``\\ / : * ? " < > |`` becomes a hyphen, one for one,
so the result is exactly as long as the title. Length limits, reserved
device names (CON, NUL, ...) and trailing dots or spaces are not handled.
Two titles that differ only in forbidden characters map to the same name
and the later note overwrites the earlier one.
"""

from __future__ import annotations

import re

FORBIDDEN_FILENAME_CHARS = '\\/:*?"<>|'

_FORBIDDEN_RE = re.compile("[{}]".format(re.escape(FORBIDDEN_FILENAME_CHARS)))

NOTE_FILE_SUFFIX = ".md"


def sanitize_filename(title: str) -> str:
    """Replace every forbidden filename character in ``title`` with ``-``."""
    return _FORBIDDEN_RE.sub("-", title)


def note_filename(title: str) -> str:
    """Return the vault file name for a note title, e.g. ``"A-B.md"``."""
    return "{}{}".format(sanitize_filename(title), NOTE_FILE_SUFFIX)
