"""Pre-migration snapshots and operator-triggered restoration."""

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..logging import get_logger
from ..models.migration import BackupSnapshot
from .manifest import MANIFEST_NAME, read_manifest, write_manifest

logger = get_logger(__name__)

BACKED_UP_LOCK_FILES = ("package-lock.json", "yarn.lock")
SCRIPTS_BACKUP_NAME = "scripts-backup.json"


def backup_directory(backups_dir: Path, repository: str, when: Optional[datetime] = None) -> Path:
    """Return the per-run backup location for a repository."""
    stamp = (when or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
    return backups_dir / repository / f"backup-{stamp}"


def create_snapshot(repo_path: Path, destination: Path) -> BackupSnapshot:
    """Copy lock files and the manifest's scripts into ``destination``.

    The manifest must be readable; without it there is nothing to restore
    scripts from and the snapshot is refused.
    """
    manifest = read_manifest(repo_path / MANIFEST_NAME)
    destination.mkdir(parents=True, exist_ok=True)

    copied: List[str] = []
    for name in BACKED_UP_LOCK_FILES:
        source = repo_path / name
        if source.is_file():
            shutil.copy2(source, destination / name)
            copied.append(name)
            logger.info("Backed up lock file", file=name, destination=str(destination))

    scripts = manifest.get("scripts") or {}
    scripts_file = destination / SCRIPTS_BACKUP_NAME
    scripts_file.write_text(json.dumps(scripts, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    return BackupSnapshot(
        path=str(destination),
        lock_files=tuple(copied),
        scripts_file=str(scripts_file),
    )


def restore_snapshot(repo_path: Path, snapshot_dir: Path) -> List[str]:
    """Restore lock files and the scripts section from a snapshot.

    Returns the names of the restored items.
    """
    if not snapshot_dir.is_dir():
        raise FileNotFoundError(f"Backup directory not found: {snapshot_dir}")

    restored: List[str] = []
    for name in BACKED_UP_LOCK_FILES:
        source = snapshot_dir / name
        if source.is_file():
            shutil.copy2(source, repo_path / name)
            restored.append(name)

    scripts_file = snapshot_dir / SCRIPTS_BACKUP_NAME
    manifest_path = repo_path / MANIFEST_NAME
    if scripts_file.is_file() and manifest_path.is_file():
        scripts = json.loads(scripts_file.read_text(encoding="utf-8"))
        manifest = read_manifest(manifest_path)
        manifest["scripts"] = scripts
        write_manifest(manifest_path, manifest)
        restored.append("scripts")

    logger.info(
        "Restored backup",
        repository_path=str(repo_path),
        backup=str(snapshot_dir),
        restored=restored,
    )
    return restored
