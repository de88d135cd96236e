"""Secure pnpm migration of one repository, and of a whole fleet."""

import shutil
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..adapters.codeartifact import CodeArtifactAuthenticator
from ..adapters.git import GitAdapter
from ..adapters.pnpm import PnpmAdapter, VulnerabilityScanner
from ..adapters.process import CommandRunner
from ..audit.collector import find_lifecycle_scripts
from ..config import Settings, get_settings
from ..errors import CollaboratorFailure, ConfigurationError
from ..logging import get_logger
from ..models.migration import BackupSnapshot, MigrationTrace, StepName
from ..models.policy import PolicyList
from ..models.signals import FleetSummary
from ..policy.loader import POLICY_FILE_NAME, load_policy, write_policy_file
from ..storage.backup import backup_directory, create_snapshot
from ..storage.journal import Journal
from ..storage.manifest import MANIFEST_NAME, read_manifest, write_manifest
from .state_machine import MigrationStateMachine, StepFailed, StepHandler, StepReport

logger = get_logger(__name__)

CONFIG_TEMPLATES = (".npmrc", ".pnpmfile.cjs")
REMOVED_ARTIFACTS = ("node_modules", "package-lock.json", "yarn.lock")
ENFORCE_PNPM_SCRIPT = "npx only-allow pnpm"
SECURITY_CHECK_SCRIPT = "pnpm audit && pnpm ls --depth=0"


class SecureMigration:
    """Step handlers for migrating one repository to pnpm."""

    def __init__(
        self,
        repository: str,
        *,
        settings: Optional[Settings] = None,
        policy: Optional[PolicyList] = None,
        runner: Optional[CommandRunner] = None,
        git: Optional[GitAdapter] = None,
        pnpm: Optional[PnpmAdapter] = None,
        scanner: Optional[VulnerabilityScanner] = None,
        registry: Optional[CodeArtifactAuthenticator] = None,
        run_id: Optional[str] = None,
        started_at: Optional[datetime] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.repo_path = self.settings.repository_path(repository)
        self.policy = policy if policy is not None else load_policy(settings=self.settings)

        runner = runner or CommandRunner()
        self.git = git or GitAdapter(runner, self.settings)
        self.pnpm = pnpm or PnpmAdapter(runner, self.settings)
        self.scanner = scanner or VulnerabilityScanner(runner, self.settings)
        self.registry = registry or CodeArtifactAuthenticator(self.settings)

        started_at = started_at or datetime.now(timezone.utc)
        self.backup_dir = backup_directory(self.settings.backups_dir, repository, started_at)
        self.snapshot: Optional[BackupSnapshot] = None
        self.trace = MigrationTrace(
            run_id=run_id or f"run_{uuid.uuid4().hex[:8]}",
            repository=repository,
            started_at=started_at,
            backup_dir=str(self.backup_dir),
        )
        self.journal = Journal(
            self.settings.reports_dir
            / f"migration-{repository}-{started_at.strftime('%Y%m%d-%H%M%S')}.jsonl"
        )

    def handlers(self) -> Dict[StepName, StepHandler]:
        return {
            'Setup': self.setup,
            'Audit': self.audit,
            'Cleanup': self.cleanup,
            'ConfigInstall': self.config_install,
            'ManifestUpdate': self.manifest_update,
            'RegistryAuth': self.registry_auth,
            'Install': self.install,
            'Verify': self.verify,
            'BuildTest': self.build_test,
            'Commit': self.commit,
        }

    def run(self) -> MigrationTrace:
        logger.info("Starting secure migration", repository=self.repository, run_id=self.trace.run_id)
        return MigrationStateMachine(self.trace, self.handlers(), self.journal).run()

    # Steps

    def setup(self) -> StepReport:
        state = self.git.ensure_checkout(self.repository)
        if state == 'cloned':
            return StepReport.ok("Cloned repository from GitHub")
        if state == 'updated':
            return StepReport.ok("Updated repository to latest main branch")
        return StepReport.warning("Could not update repository (may not have main branch)")

    def audit(self) -> StepReport:
        manifest_path = self.repo_path / MANIFEST_NAME
        if not manifest_path.is_file():
            raise StepFailed(f"No {MANIFEST_NAME} found")
        manifest = read_manifest(manifest_path)

        notes: List[str] = []
        warn = False

        lifecycle = find_lifecycle_scripts(manifest)
        if lifecycle:
            warn = True
            notes.append("Found lifecycle scripts (will be disabled):")
            notes.extend(f"  {line}" for line in lifecycle)
        else:
            notes.append("No lifecycle scripts found")

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        try:
            raw = self.scanner.npm_audit_json(self.repo_path)
            (self.backup_dir / "audit-before.json").write_text(raw or "{}", encoding="utf-8")
            count = VulnerabilityScanner.count_findings(raw, "vulnerabilities", "npm audit")
        except CollaboratorFailure as e:
            warn = True
            notes.append(f"npm audit unavailable: {e}")
        else:
            if count:
                warn = True
                notes.append(f"{count} vulnerabilities detected")
            else:
                notes.append("No vulnerabilities detected")

        if warn:
            return StepReport.warning("Security audit found issues", *notes)
        return StepReport.ok(f"{MANIFEST_NAME} found, no issues", *notes)

    def cleanup(self) -> StepReport:
        try:
            self.snapshot = create_snapshot(self.repo_path, self.backup_dir)
        except (OSError, ConfigurationError) as e:
            raise StepFailed(f"Backup failed, nothing removed: {e}") from e

        notes = [f"Backed up {name}" for name in self.snapshot.lock_files]
        notes.append("Backed up scripts configuration")

        for name in REMOVED_ARTIFACTS:
            target = self.repo_path / name
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()
            else:
                continue
            notes.append(f"Removed {name}")

        return StepReport.ok(f"Backup taken at {self.backup_dir}", *notes)

    def config_install(self) -> StepReport:
        for name in CONFIG_TEMPLATES:
            template = self.settings.configs_dir / name
            if not template.is_file():
                raise StepFailed(f"Missing configuration template: {template}")

        notes = []
        for name in CONFIG_TEMPLATES:
            shutil.copy2(self.settings.configs_dir / name, self.repo_path / name)
            notes.append(f"Installed {name}")

        write_policy_file(self.policy, self.repo_path / POLICY_FILE_NAME)
        notes.append(f"Exported script policy to {POLICY_FILE_NAME}")
        return StepReport.ok("Security configuration installed", *notes)

    def manifest_update(self) -> StepReport:
        manifest_path = self.repo_path / MANIFEST_NAME
        manifest = read_manifest(manifest_path)

        scripts = manifest.setdefault("scripts", {})
        if not isinstance(scripts, dict):
            raise ConfigurationError(f"'scripts' in {MANIFEST_NAME} is not an object")

        notes = []
        previous = scripts.get("preinstall")
        if previous and previous != ENFORCE_PNPM_SCRIPT:
            notes.append(f"Replaced preinstall script: {previous}")

        manifest["packageManager"] = f"pnpm@{self.settings.pnpm_version}"
        scripts["preinstall"] = ENFORCE_PNPM_SCRIPT
        scripts["security:check"] = SECURITY_CHECK_SCRIPT
        write_manifest(manifest_path, manifest)

        notes.extend([
            "Added packageManager field",
            "Added preinstall script to enforce pnpm",
            "Added security:check script",
        ])
        return StepReport.ok(f"Updated {MANIFEST_NAME} for pnpm", *notes)

    def registry_auth(self) -> StepReport:
        scopes = self.registry.configure_pnpm(self.pnpm, self.repo_path)
        return StepReport.ok("CodeArtifact authentication refreshed", *(f"Routed {s}" for s in scopes))

    def install(self) -> StepReport:
        notes: List[str] = []
        warn = False

        if self.snapshot is not None and self.snapshot.has_lock_file:
            try:
                self.pnpm.import_lockfile(self.repo_path)
                notes.append("Imported dependencies from existing lock file")
            except CollaboratorFailure as e:
                warn = True
                notes.append(f"Import failed, performing fresh install: {e}")

        log_path = self.backup_dir / "install-log.txt"
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        try:
            result = self.pnpm.install(self.repo_path)
        except CollaboratorFailure as e:
            log_path.write_text(e.stderr, encoding="utf-8")
            raise

        log_path.write_text(result.output, encoding="utf-8")
        notes.append(f"Install log saved to {log_path}")
        if warn:
            return StepReport.warning("Dependencies installed after failed import", *notes)
        return StepReport.ok("Dependencies installed with pnpm", *notes)

    def verify(self) -> StepReport:
        notes = []
        warn = False

        if (self.repo_path / "pnpm-lock.yaml").is_file():
            notes.append("pnpm-lock.yaml generated")
        else:
            warn = True
            notes.append("pnpm-lock.yaml missing")

        if self.pnpm.audit_passes(self.repo_path):
            notes.append("Security audit passed")
        else:
            warn = True
            notes.append("Security audit found issues")

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        tree = self.pnpm.list_dependencies(self.repo_path)
        (self.backup_dir / "dependencies-after.txt").write_text(tree, encoding="utf-8")
        notes.append("Dependency tree recorded")

        if warn:
            return StepReport.warning("Verification found issues", *notes)
        return StepReport.ok("Verification passed", *notes)

    def build_test(self) -> StepReport:
        scripts = read_manifest(self.repo_path / MANIFEST_NAME).get("scripts") or {}
        if "build" not in scripts:
            return StepReport.ok("No build script found")
        self.pnpm.run_build(self.repo_path)
        return StepReport.ok("Build test successful")

    def commit(self) -> StepReport:
        branch = self.settings.migration_branch
        state = self.git.checkout_branch(self.repo_path, branch)
        note = f"{'Created' if state == 'created' else 'Switched to'} branch {branch}"
        if not self.git.commit_all(self.repo_path, self.settings.commit_message):
            return StepReport.warning("Commit failed or no changes to commit", note)
        return StepReport.ok(f"Changes committed on {branch}", note)


MigrationFactory = Callable[[str], SecureMigration]


class MigrationPipeline:
    """Migrates repositories in priority order, isolating failures."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        migration_factory: Optional[MigrationFactory] = None,
    ):
        self.settings = settings or get_settings()
        if migration_factory is None:
            policy = load_policy(settings=self.settings)
            runner = CommandRunner()

            def default_factory(repository: str) -> SecureMigration:
                return SecureMigration(repository, settings=self.settings, policy=policy, runner=runner)

            migration_factory = default_factory

        self.migration_factory = migration_factory

    def migrate(self, repository: str) -> MigrationTrace:
        return self.migration_factory(repository).run()

    def migrate_fleet(self, summary: FleetSummary) -> List[MigrationTrace]:
        """Migrate every classified repository, HIGH risk first.

        A repository whose migration aborts is logged and skipped; the
        remaining repositories still run.
        """
        traces: List[MigrationTrace] = []
        for repository in summary.prioritized_order:
            trace = self.migrate(repository)
            traces.append(trace)
            if trace.aborted:
                failed = trace.steps[-1]
                logger.error(
                    "Repository migration aborted, continuing with fleet",
                    repository=repository,
                    step=failed.name,
                    detail=failed.detail,
                )
        if summary.failed:
            logger.warning("Repositories skipped after failed audit", repositories=list(summary.failed))
        return traces
