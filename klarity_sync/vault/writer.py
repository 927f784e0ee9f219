"""Create-or-overwrite note files inside the vault directory.

WHY: Each synced note becomes one Markdown file. Re-syncing must update
that same file, not add a copy next to it, and a bad path or a read-only
folder must fail only the note in question, not the whole cycle.

HOW: Paths are vault-relative strings, normalized the way the host app
normalizes them, then resolved under the vault root. Existing files are
opened for writing and truncated, which replaces the content while keeping
the same file (inode, creation time, any watcher bound to it). New files
are created. Every OSError, and the ValueError a NUL byte in a name
raises, comes back as WriteError.

RULES:
- Path normalization: "\\" → "/", repeated "/" collapsed, outer "/" stripped
- A path resolving outside the vault root is refused with WriteError
- The parent directory is created if missing; "already exists" is fine
- Content is written as UTF-8 text
- write() returns WriteOutcome.CREATED or WriteOutcome.UPDATED
"""

from __future__ import annotations

import enum
import logging
import re
from pathlib import Path

from klarity_sync.errors import WriteError

logger = logging.getLogger(__name__)

_SLASHES_RE = re.compile(r"/+")


class WriteOutcome(str, enum.Enum):
    """What write() did to the target file."""

    CREATED = "created"
    UPDATED = "updated"


def normalize_vault_path(path: str) -> str:
    """Normalize a vault-relative path.

    Examples:
        ``"/Klarity//notes/"`` → ``"Klarity/notes"``
        ``"Klarity\\Inbox"`` → ``"Klarity/Inbox"``
    """
    path = path.replace("\\", "/")
    path = _SLASHES_RE.sub("/", path)
    return path.strip("/")


def join_vault_path(*parts: str) -> str:
    """Join vault-relative path segments with "/" and normalize the result."""
    return normalize_vault_path("/".join(p for p in parts if p))


def _reason(exc: Exception) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc)


class VaultWriter:
    """File access for one vault root.

    WHY: The orchestrator should only deal in vault-relative paths. This
    class maps them onto the real filesystem and owns every write.

    HOW: Plain pathlib I/O. Methods are synchronous; the orchestrator runs
    them in a worker thread one at a time.

    RULES:
    - vault_root must exist; it is never created here
    - All public methods take vault-relative paths
    """

    def __init__(self, vault_root: Path) -> None:
        self.vault_root = Path(vault_root).resolve()

    def resolve(self, path: str) -> Path:
        """Map a vault-relative path to an absolute path inside the vault.

        Raises:
            WriteError: The path is empty, unusable as a file name, or
                escapes the vault root.
        """
        rel = normalize_vault_path(path)
        if not rel:
            raise WriteError(path, "Empty path is not a valid vault location.")

        try:
            target = (self.vault_root / rel).resolve()
        except (OSError, ValueError) as e:
            raise WriteError(rel, "Invalid vault path {!r}: {}".format(rel, _reason(e))) from e
        if target != self.vault_root and self.vault_root not in target.parents:
            raise WriteError(
                rel,
                "Refusing to write outside the vault: {}".format(rel),
            )
        return target

    def ensure_directory(self, path: str) -> Path:
        """Create the directory at ``path`` if it is missing.

        Raises:
            WriteError: The directory cannot be created, or a file is in the way.
        """
        target = self.resolve(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise WriteError(
                normalize_vault_path(path),
                "Cannot create folder {}: a file with that name exists.".format(
                    normalize_vault_path(path)
                ),
            ) from e
        except (OSError, ValueError) as e:
            raise WriteError(
                normalize_vault_path(path),
                "Cannot create folder {}: {}".format(normalize_vault_path(path), _reason(e)),
            ) from e
        return target

    def write(self, path: str, content: str) -> WriteOutcome:
        """Create the file at ``path`` or overwrite it in place.

        Args:
            path: Vault-relative file path, e.g. ``"Klarity/Standup.md"``.
            content: Full file content.

        Returns:
            CREATED for a new file, UPDATED when an existing file was overwritten.

        Raises:
            WriteError: Permission denied, invalid name, path is a directory,
                or the path escapes the vault.
        """
        rel = normalize_vault_path(path)
        target = self.resolve(rel)

        parent = rel.rpartition("/")[0]
        if parent:
            self.ensure_directory(parent)

        try:
            existed = target.exists()
            if existed and not target.is_file():
                raise WriteError(rel, "Cannot write {}: it is not a file.".format(rel))

            # "w" truncates the existing file rather than replacing it
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except (OSError, ValueError) as e:
            raise WriteError(
                rel,
                "Could not write {}: {}".format(rel, _reason(e)),
            ) from e

        outcome = WriteOutcome.UPDATED if existed else WriteOutcome.CREATED
        logger.debug("%s %s", outcome.value.capitalize(), rel)
        return outcome
