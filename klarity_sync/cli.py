"""Command-line front end for Klarity Sync.

WHY: The sync core is host-agnostic. Users without an editor plugin still
want to pull their Klarity notes into a vault folder from a terminal, a
cron job, or a long-running background process, and to edit the persisted
settings without hand-editing JSON.

HOW: argparse with three subcommands:
  sync    : one manual cycle, exit status reflects the outcome
  watch   : startup sync plus the auto-sync timer until interrupted
  config  : ``show`` prints the settings, ``set`` updates one field
Each command builds a SettingsStore, VaultWriter, ConsoleStatusSink, and
SyncOrchestrator from the global options, then runs via asyncio.run().

RULES:
- --vault defaults to KLARITY_VAULT_PATH, then the current directory
- --settings defaults to KLARITY_SETTINGS_PATH, then <vault>/.klarity/settings.json
- Status output and errors go to stderr; only ``config show`` writes stdout
- ``config show`` never prints the full API key
- ``config set`` accepts persisted names (apiKey, syncTimeout, ...) or
  field names (api_key, sync_interval, ...)
- Exit codes: 0 success, 1 failed/not configured/bad input, 130 interrupted
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from klarity_sync import __version__
from klarity_sync.config import (
    FIELD_NAMES,
    KLARITY_VAULT_PATH,
    PERSISTED_KEYS,
    SettingsStore,
    resolve_settings_path,
)
from klarity_sync.errors import ConfigurationError
from klarity_sync.sync.orchestrator import SyncOrchestrator, SyncStatus
from klarity_sync.sync.scheduler import SyncScheduler
from klarity_sync.sync.status import ConsoleStatusSink
from klarity_sync.vault.writer import VaultWriter

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


def _error(msg: str) -> None:
    """Print an error message to stderr."""
    print("Error: {}".format(msg), file=sys.stderr, flush=True)


def mask_api_key(key: str) -> str:
    """Hide all but the last four characters of an API key."""
    if not key:
        return ""
    if len(key) <= 4:
        return "*" * len(key)
    return "*" * (len(key) - 4) + key[-4:]


def parse_setting(name: str, raw: str) -> Tuple[str, Any]:
    """Convert a ``config set`` key and string value into a field name and typed value.

    Raises:
        ValueError: Unknown key or a value that cannot be converted.
    """
    field_name = FIELD_NAMES.get(name, name)
    if field_name not in PERSISTED_KEYS:
        raise ValueError(
            "Unknown setting '{}'. Available: {}".format(
                name, ", ".join(sorted(FIELD_NAMES))
            )
        )

    if field_name == "auto_sync":
        word = raw.strip().lower()
        if word in _TRUE_WORDS:
            return field_name, True
        if word in _FALSE_WORDS:
            return field_name, False
        raise ValueError("autoSync must be true or false, got '{}'".format(raw))

    if field_name == "sync_interval":
        try:
            return field_name, int(raw.strip())
        except ValueError:
            raise ValueError(
                "syncTimeout must be a whole number of minutes, got '{}'".format(raw)
            ) from None

    return field_name, raw


def _resolve_vault(args: argparse.Namespace) -> Path:
    vault = Path(args.vault or KLARITY_VAULT_PATH or ".").expanduser()
    if not vault.is_dir():
        raise ConfigurationError("Vault directory does not exist: {}".format(vault))
    return vault.resolve()


def _load_store(args: argparse.Namespace) -> Tuple[Path, SettingsStore]:
    vault = _resolve_vault(args)
    store = SettingsStore(resolve_settings_path(vault, args.settings))
    store.load()
    return vault, store


def _build_orchestrator(vault: Path, store: SettingsStore) -> SyncOrchestrator:
    return SyncOrchestrator(
        settings_store=store,
        writer=VaultWriter(vault),
        status_sink=ConsoleStatusSink(),
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_sync(args: argparse.Namespace) -> int:
    vault, store = _load_store(args)
    orchestrator = _build_orchestrator(vault, store)
    result = asyncio.run(orchestrator.run_sync(notify_user=True))
    if result.status is SyncStatus.COMPLETED:
        return 0 if result.failed == 0 or not args.strict else 1
    return 1


def _cmd_watch(args: argparse.Namespace) -> int:
    vault, store = _load_store(args)
    orchestrator = _build_orchestrator(vault, store)
    scheduler = SyncScheduler(orchestrator, store)
    logger.info("Watching Klarity for vault %s (settings: %s)", vault, store.path)
    try:
        asyncio.run(scheduler.run_forever())
    except KeyboardInterrupt:
        print("\nStopped.", file=sys.stderr)
        return 130
    return 0


def _cmd_config_show(args: argparse.Namespace) -> int:
    _vault, store = _load_store(args)
    record = store.snapshot().to_record()
    record["apiKey"] = mask_api_key(record["apiKey"])
    print(json.dumps(record, indent=2))
    return 0


def _cmd_config_set(args: argparse.Namespace) -> int:
    if args.file is not None:
        value = Path(args.file).read_text(encoding="utf-8")
    elif args.value is not None:
        value = args.value
    else:
        _error("config set needs a VALUE or --file")
        return 1

    field_name, typed = parse_setting(args.key, value)
    _vault, store = _load_store(args)
    store.update(**{field_name: typed})
    print("Saved {} to {}".format(PERSISTED_KEYS[field_name], store.path), file=sys.stderr)
    return 0


# ---------------------------------------------------------------------------
# Parser and entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Kept separate from main() so tests can inspect the parser without
    running anything.
    """
    parser = argparse.ArgumentParser(
        prog="klarity-sync",
        description="Sync Klarity transcriptions into a local Markdown vault.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "--vault",
        default=None,
        help="Vault root directory (default: $KLARITY_VAULT_PATH or the current directory).",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Settings JSON file (default: $KLARITY_SETTINGS_PATH or <vault>/.klarity/settings.json).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress and debug detail to stderr.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_sync = sub.add_parser("sync", help="Run one sync now.")
    p_sync.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero if any single note failed to write.",
    )
    p_sync.set_defaults(func=_cmd_sync)

    p_watch = sub.add_parser(
        "watch",
        help="Sync at startup, then every syncTimeout minutes while autoSync is on.",
    )
    p_watch.set_defaults(func=_cmd_watch)

    p_config = sub.add_parser("config", help="Show or change persisted settings.")
    config_sub = p_config.add_subparsers(dest="config_command", required=True)

    p_show = config_sub.add_parser("show", help="Print settings as JSON (API key masked).")
    p_show.set_defaults(func=_cmd_config_show)

    p_set = config_sub.add_parser("set", help="Change one setting and save it.")
    p_set.add_argument("key", help="Setting name, e.g. apiKey, syncDirectory, autoSync, syncTimeout.")
    p_set.add_argument("value", nargs="?", default=None, help="New value.")
    p_set.add_argument(
        "--file",
        default=None,
        help="Read the value from a file (useful for noteTemplate).",
    )
    p_set.set_defaults(func=_cmd_config_set)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI.

    argv=None means use sys.argv; explicit argv is for testing.
    Returns the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        return args.func(args)
    except ConfigurationError as e:
        _error(e.message)
        return 1
    except ValueError as e:
        _error(str(e))
        return 1
    except OSError as e:
        _error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
