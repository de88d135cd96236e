"""pnpm and vulnerability scanner adapters."""

import json
from pathlib import Path
from typing import Optional

from ..config import Settings, get_settings
from ..errors import CollaboratorFailure
from ..logging import get_logger
from ..models.signals import PackageManager
from .process import CommandResult, CommandRunner

logger = get_logger(__name__)


class PnpmAdapter:
    """Adapter for the pnpm command line."""

    def __init__(self, runner: Optional[CommandRunner] = None, settings: Optional[Settings] = None):
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()

    def import_lockfile(self, repo_path: Path) -> CommandResult:
        return self.runner.run(
            ["pnpm", "import"],
            cwd=repo_path,
            timeout=self.settings.install_timeout,
            check=True,
        )

    def install(self, repo_path: Path) -> CommandResult:
        return self.runner.run(
            ["pnpm", "install", "--frozen-lockfile", "--ignore-scripts"],
            cwd=repo_path,
            timeout=self.settings.install_timeout,
            check=True,
        )

    def audit_passes(self, repo_path: Path, level: str = "moderate") -> bool:
        result = self.runner.run(
            ["pnpm", "audit", f"--audit-level={level}"],
            cwd=repo_path,
            timeout=self.settings.audit_timeout,
        )
        return result.ok

    def list_dependencies(self, repo_path: Path) -> str:
        result = self.runner.run(
            ["pnpm", "ls", "--depth=0"],
            cwd=repo_path,
            timeout=self.settings.command_timeout,
        )
        return result.output

    def run_build(self, repo_path: Path) -> CommandResult:
        return self.runner.run(
            ["pnpm", "run", "build"],
            cwd=repo_path,
            timeout=self.settings.build_timeout,
            check=True,
        )

    def set_config(self, key: str, value: str, repo_path: Optional[Path] = None) -> None:
        self.runner.run(
            ["pnpm", "config", "set", key, value],
            cwd=repo_path,
            timeout=self.settings.command_timeout,
            check=True,
        )


class VulnerabilityScanner:
    """Runs the repository's own package manager audit and counts findings."""

    def __init__(self, runner: Optional[CommandRunner] = None, settings: Optional[Settings] = None):
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()

    def npm_audit_json(self, repo_path: Path) -> str:
        """Return raw ``npm audit --json`` output.

        npm exits non-zero when it finds vulnerabilities, so the exit status
        is not checked here.
        """
        result = self.runner.run(
            ["npm", "audit", "--json"],
            cwd=repo_path,
            timeout=self.settings.audit_timeout,
        )
        return result.stdout

    def count(self, repo_path: Path, package_manager: PackageManager) -> int:
        """Count vulnerabilities reported for a repository.

        Raises:
            CollaboratorFailure: If the scanner cannot run or its output is unreadable.
        """
        if package_manager == 'npm':
            if not (repo_path / "package-lock.json").is_file():
                return 0
            return self.count_findings(self.npm_audit_json(repo_path), "vulnerabilities", "npm audit")

        if package_manager == 'pnpm':
            result = self.runner.run(
                ["pnpm", "audit", "--json"],
                cwd=repo_path,
                timeout=self.settings.audit_timeout,
            )
            return self.count_findings(result.stdout, "advisories", "pnpm audit")

        if package_manager == 'yarn':
            result = self.runner.run(
                ["yarn", "audit", "--json"],
                cwd=repo_path,
                timeout=self.settings.audit_timeout,
            )
            return 0 if result.ok else 1

        return 0

    @staticmethod
    def count_findings(output: str, key: str, tool: str) -> int:
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as e:
            raise CollaboratorFailure(f"{tool} produced unreadable output: {e}", command=tool.split()) from e

        if not isinstance(payload, dict):
            raise CollaboratorFailure(f"{tool} output is not a JSON object", command=tool.split())

        findings = payload.get(key)
        if findings is None:
            if "error" in payload:
                raise CollaboratorFailure(f"{tool} reported an error: {payload['error']}", command=tool.split())
            return 0
        if not isinstance(findings, dict):
            raise CollaboratorFailure(f"{tool} '{key}' is not an object", command=tool.split())
        return len(findings)
