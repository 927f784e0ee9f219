"""Pure note transformations: template rendering and filename sanitizing.

Nothing in this package performs I/O.
"""

from klarity_sync.core.filenames import note_filename, sanitize_filename
from klarity_sync.core.template import TEMPLATE_TOKENS, render_note

__all__ = ["TEMPLATE_TOKENS", "note_filename", "render_note", "sanitize_filename"]
