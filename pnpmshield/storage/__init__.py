"""Persistence helpers for pnpmshield."""

from .backup import backup_directory, create_snapshot, restore_snapshot
from .journal import Journal
from .manifest import read_manifest, write_manifest

__all__ = [
    "Journal",
    "backup_directory",
    "create_snapshot",
    "read_manifest",
    "restore_snapshot",
    "write_manifest",
]
