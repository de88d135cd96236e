"""Collect supply-chain signals from a repository checkout."""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..config import Settings, get_settings
from ..errors import ClassificationInputMissing, CollaboratorFailure, ConfigurationError
from ..logging import get_logger
from ..models.signals import PackageManager, RepositorySignals
from ..adapters.pnpm import VulnerabilityScanner
from ..storage.manifest import MANIFEST_NAME, read_manifest

logger = get_logger(__name__)

LIFECYCLE_SCRIPT_PATTERN = re.compile(r"(pre|post)?(install|prepare)")

# Lock file -> package manager, checked in this order
LOCK_FILES = (
    ("pnpm-lock.yaml", 'pnpm'),
    ("package-lock.json", 'npm'),
    ("yarn.lock", 'yarn'),
)


def detect_package_manager(repo_path: Path) -> PackageManager:
    for lock_file, manager in LOCK_FILES:
        if (repo_path / lock_file).is_file():
            return manager
    return 'unknown'


def find_lifecycle_scripts(manifest: Dict[str, Any]) -> List[str]:
    """Return ``name: command`` for each install/prepare hook in the manifest."""
    scripts = manifest.get("scripts") or {}
    if not isinstance(scripts, dict):
        return []
    return [
        f"{name}: {command}"
        for name, command in scripts.items()
        if LIFECYCLE_SCRIPT_PATTERN.fullmatch(name)
    ]


def find_risk_packages(manifest: Dict[str, Any], risk_packages: Sequence[str]) -> List[str]:
    found: List[str] = []
    for package in risk_packages:
        for section in ("dependencies", "devDependencies"):
            deps = manifest.get(section) or {}
            if isinstance(deps, dict) and package in deps:
                found.append(package)
                break
    return found


class SignalCollector:
    """Reads a checkout's manifest and runs its audit tool."""

    def __init__(
        self,
        scanner: Optional[VulnerabilityScanner] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.scanner = scanner or VulnerabilityScanner(settings=self.settings)

    def collect(self, repository: str, repo_path: Optional[Path] = None) -> RepositorySignals:
        """Collect signals for one repository.

        Raises:
            ClassificationInputMissing: If the manifest is missing or unreadable,
                or the vulnerability scanner output cannot be used.
        """
        repo_path = repo_path or self.settings.repository_path(repository)
        manifest_path = repo_path / MANIFEST_NAME

        try:
            manifest = read_manifest(manifest_path)
        except FileNotFoundError as e:
            raise ClassificationInputMissing(repository, f"no {MANIFEST_NAME} found") from e
        except (OSError, ConfigurationError) as e:
            raise ClassificationInputMissing(repository, f"unreadable {MANIFEST_NAME}: {e}") from e

        package_manager = detect_package_manager(repo_path)
        lifecycle_scripts = find_lifecycle_scripts(manifest)
        risk_packages = find_risk_packages(manifest, self.settings.risk_packages)

        if lifecycle_scripts:
            logger.warning("Repository has lifecycle scripts", repository=repository, scripts=lifecycle_scripts)
        if risk_packages:
            logger.warning("Repository contains risk packages", repository=repository, packages=risk_packages)

        try:
            vulnerability_count = self.scanner.count(repo_path, package_manager)
        except CollaboratorFailure as e:
            raise ClassificationInputMissing(repository, f"vulnerability scan failed: {e}") from e

        return RepositorySignals(
            has_lifecycle_scripts=bool(lifecycle_scripts),
            vulnerability_count=vulnerability_count,
            has_risk_package=bool(risk_packages),
            package_manager=package_manager,
            lifecycle_scripts=tuple(lifecycle_scripts),
            risk_packages=tuple(risk_packages),
        )
