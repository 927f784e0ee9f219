"""Vault file access: path normalization and create-or-overwrite writes."""

from klarity_sync.vault.writer import (
    VaultWriter,
    WriteOutcome,
    join_vault_path,
    normalize_vault_path,
)

__all__ = ["VaultWriter", "WriteOutcome", "join_vault_path", "normalize_vault_path"]
