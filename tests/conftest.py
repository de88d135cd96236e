"""Shared fixtures for pnpmshield tests."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from pnpmshield.adapters.process import CommandResult, CommandRunner
from pnpmshield.config import Settings, reset_settings
from pnpmshield.errors import CollaboratorFailure


class FakeRunner(CommandRunner):
    """Scripted command runner.

    Responses are matched by command prefix, longest prefix first. Commands
    with no scripted response succeed with empty output.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], CommandResult]] = None):
        self.responses: Dict[Tuple[str, ...], CommandResult] = dict(responses or {})
        self.calls: List[Tuple[List[str], Optional[Path]]] = []

    def script(self, prefix: Sequence[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[tuple(prefix)] = CommandResult(list(prefix), returncode, stdout, stderr)

    def run(self, cmd, *, cwd=None, timeout=None, check=False, env=None) -> CommandResult:
        command = [str(part) for part in cmd]
        self.calls.append((command, cwd))

        result = CommandResult(command, 0)
        for prefix in sorted(self.responses, key=len, reverse=True):
            if tuple(command[:len(prefix)]) == prefix:
                scripted = self.responses[prefix]
                result = CommandResult(command, scripted.returncode, scripted.stdout, scripted.stderr)
                break

        if check and not result.ok:
            raise CollaboratorFailure(
                f"Command failed with exit code {result.returncode}: {' '.join(command)}",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def commands(self) -> List[List[str]]:
        return [command for command, _ in self.calls]


def write_package(repo_path: Path, manifest: dict) -> Path:
    repo_path.mkdir(parents=True, exist_ok=True)
    path = repo_path / "package.json"
    path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _reset_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with every directory under tmp_path."""
    return Settings(
        _env_file=None,
        projects_dir=tmp_path / "projects",
        configs_dir=tmp_path / "configs",
        reports_dir=tmp_path / "reports",
        backups_dir=tmp_path / "backups",
        policy_file=None,
        aws_profile=None,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()
