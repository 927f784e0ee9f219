"""Configuration constants, .env loading, and the persisted settings store.

WHY: Two kinds of configuration exist. Deployment values (API base URL,
timeouts, where the vault and settings file live) come from the environment.
User settings (API key, sync directory, template, auto-sync) are edited at
runtime and must survive restarts. Keeping both here means every component
reads configuration from one place.

HOW: python-dotenv loads the .env file on import and module-level constants
read the environment with defaults. SyncSettings is a plain dataclass.
SettingsStore owns the single live SyncSettings instance: it loads the
persisted JSON record merged over defaults, hands out snapshots, validates
and persists every update, and notifies listeners of changed fields.

RULES:
- Persisted keys keep the host's camelCase names (apiKey, syncTimeout, ...)
- Defaults win only for keys absent from the persisted record
- Every update() is followed by an immediate save(), no batching
- snapshot() returns a copy, so a running sync never sees a torn update
- sync_interval must be an int greater than zero
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from dotenv import load_dotenv

from klarity_sync.errors import ConfigurationError

# Load .env from the directory the tool is run from
load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment defaults
# ---------------------------------------------------------------------------

KLARITY_BASE_URL = os.getenv("KLARITY_BASE_URL", "https://local-api.klarity.pro/api")
KLARITY_TIMEOUT_S = float(os.getenv("KLARITY_TIMEOUT_S", "30"))
KLARITY_VAULT_PATH = os.getenv("KLARITY_VAULT_PATH", "")
KLARITY_SETTINGS_PATH = os.getenv("KLARITY_SETTINGS_PATH", "")

SETTINGS_RELATIVE_PATH = Path(".klarity") / "settings.json"
"""Settings file location inside the vault when KLARITY_SETTINGS_PATH is unset."""

MIN_API_KEY_LENGTH = 32

# ---------------------------------------------------------------------------
# Sync timing
# ---------------------------------------------------------------------------

STARTUP_DELAY_S = 1.0
"""Delay between scheduler start and the one-shot startup sync."""

STATUS_CLEAR_DELAY_S = 5.0
"""How long transient status text stays up before clearing itself."""

# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------

DEFAULT_SYNC_DIRECTORY = "Klarity"
DEFAULT_SYNC_INTERVAL_MIN = 5

DEFAULT_NOTE_TEMPLATE = """---
id: {{id}}
created: {{createdAt}}
updated: {{updatedAt}}
---

# {{title}}

## Transcription
{{transcription}}
"""

PERSISTED_KEYS: Dict[str, str] = {
    "api_key": "apiKey",
    "sync_directory": "syncDirectory",
    "last_sync_time": "lastSyncTime",
    "auto_sync": "autoSync",
    "sync_interval": "syncTimeout",
    "note_template": "noteTemplate",
}
"""SyncSettings field name → key in the persisted JSON record."""

FIELD_NAMES: Dict[str, str] = {v: k for k, v in PERSISTED_KEYS.items()}
"""Persisted key → SyncSettings field name."""


@dataclass
class SyncSettings:
    """User-editable sync configuration.

    Attributes:
        api_key: Klarity bearer token. Secret; never logged.
        sync_directory: Vault-relative folder the notes are written into.
        last_sync_time: ISO-8601 UTC timestamp of the last completed cycle,
                        empty until the first one.
        auto_sync: Whether the periodic timer is active.
        sync_interval: Minutes between scheduled syncs.
        note_template: Template with ``{{field}}`` placeholders.
    """

    api_key: str = ""
    sync_directory: str = DEFAULT_SYNC_DIRECTORY
    last_sync_time: str = ""
    auto_sync: bool = False
    sync_interval: int = DEFAULT_SYNC_INTERVAL_MIN
    note_template: str = DEFAULT_NOTE_TEMPLATE

    def to_record(self) -> Dict[str, Any]:
        """Return the flat persisted record (camelCase keys)."""
        return {PERSISTED_KEYS[f.name]: getattr(self, f.name) for f in dataclasses.fields(self)}


def default_settings() -> SyncSettings:
    """Build the default settings, seeding the API key from KLARITY_API_KEY."""
    return SyncSettings(api_key=os.getenv("KLARITY_API_KEY", "").strip())


def resolve_settings_path(vault_root: Path, explicit: Optional[str] = None) -> Path:
    """Pick the settings file: explicit path, then KLARITY_SETTINGS_PATH, then the vault default."""
    if explicit:
        return Path(explicit)
    if KLARITY_SETTINGS_PATH:
        return Path(KLARITY_SETTINGS_PATH)
    return Path(vault_root) / SETTINGS_RELATIVE_PATH


def _validate_field(name: str, value: Any) -> Any:
    """Check one settings value against its field type.

    Raises:
        ValueError: Unknown field or a value of the wrong type.
    """
    if name not in PERSISTED_KEYS:
        raise ValueError("Unknown setting '{}'".format(name))

    if name == "sync_interval":
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(
                "sync_interval must be a whole number of minutes greater than 0, "
                "got {!r}".format(value)
            )
    elif name == "auto_sync":
        if not isinstance(value, bool):
            raise ValueError("auto_sync must be true or false, got {!r}".format(value))
    elif not isinstance(value, str):
        raise ValueError("{} must be a string, got {!r}".format(name, value))

    return value


SettingsListener = Callable[[Set[str]], None]


class SettingsStore:
    """Single owner of the persisted SyncSettings.

    WHY: The orchestrator, the scheduler, and the settings surface all read
    and write settings. Funnelling every mutation through one object with
    one persist path keeps the file and the in-memory state in step, and
    lets the scheduler react to interval changes.

    HOW: Holds the live SyncSettings behind a threading.Lock. update()
    validates the changes, applies them, writes the JSON record atomically,
    then calls listeners (outside the lock) with the changed field names.

    RULES:
    - load() with no file on disk yields defaults and does not write
    - A corrupt or non-object settings file raises ConfigurationError
    - Unknown keys in the persisted file are ignored
    - Listeners only hear about fields whose value actually changed
    """

    def __init__(self, path: Path, settings: Optional[SyncSettings] = None) -> None:
        self.path = Path(path)
        self._settings = settings if settings is not None else default_settings()
        self._lock = threading.Lock()
        self._listeners: List[SettingsListener] = []

    def load(self) -> SyncSettings:
        """Load the persisted record merged over defaults.

        Returns:
            A snapshot of the loaded settings.

        Raises:
            ConfigurationError: The file exists but is not a valid record.
        """
        merged = default_settings()

        if self.path.is_file():
            try:
                record = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise ConfigurationError(
                    "Could not read settings file {}: {}".format(self.path, e)
                ) from e

            if not isinstance(record, dict):
                raise ConfigurationError(
                    "Settings file {} must contain a JSON object".format(self.path)
                )

            for key, value in record.items():
                name = FIELD_NAMES.get(key)
                if name is None:
                    logger.debug("Ignoring unknown settings key %s", key)
                    continue
                try:
                    setattr(merged, name, _validate_field(name, value))
                except ValueError as e:
                    raise ConfigurationError(
                        "Invalid value for '{}' in {}: {}".format(key, self.path, e)
                    ) from e
        else:
            logger.info("No settings file at %s, using defaults", self.path)

        with self._lock:
            self._settings = merged
            return dataclasses.replace(merged)

    def snapshot(self) -> SyncSettings:
        """Return an independent copy of the current settings."""
        with self._lock:
            return dataclasses.replace(self._settings)

    def update(self, **changes: Any) -> SyncSettings:
        """Validate, apply, and persist one or more settings changes.

        Args:
            **changes: SyncSettings field names and their new values.

        Returns:
            A snapshot of the settings after the update.

        Raises:
            ValueError: Unknown field or invalid value. Nothing is applied.
        """
        for name, value in changes.items():
            _validate_field(name, value)

        with self._lock:
            changed = {
                name for name, value in changes.items()
                if getattr(self._settings, name) != value
            }
            for name, value in changes.items():
                setattr(self._settings, name, value)
            self._write_locked()
            result = dataclasses.replace(self._settings)

        if changed:
            logger.debug("Settings changed: %s", ", ".join(sorted(changed)))
            for listener in list(self._listeners):
                listener(changed)

        return result

    def save(self) -> None:
        """Persist the current settings."""
        with self._lock:
            self._write_locked()

    def subscribe(self, listener: SettingsListener) -> None:
        """Register a callback invoked with the set of changed field names."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: SettingsListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _write_locked(self) -> None:
        # Caller holds self._lock
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(self._settings.to_record(), indent=2),
            encoding="utf-8",
        )
        os.replace(tmp_path, self.path)
