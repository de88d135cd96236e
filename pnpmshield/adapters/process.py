"""Subprocess runner shared by every external tool adapter."""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from ..errors import CollaboratorFailure
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Completed external command."""

    command: List[str]
    returncode: int
    stdout: str = field(default="")
    stderr: str = field(default="")

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class CommandRunner:
    """Run external commands synchronously.

    Tests swap this for a scripted fake; adapters never call ``subprocess``
    directly.
    """

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        timeout: Optional[int] = None,
        check: bool = False,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        command = [str(part) for part in cmd]
        logger.debug("Running command", cmd=" ".join(command), cwd=str(cwd) if cwd else None)

        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as e:
            raise CollaboratorFailure(f"Command not found: {command[0]}", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise CollaboratorFailure(
                f"Command timed out after {timeout}s: {' '.join(command)}",
                command=command,
            ) from e

        result = CommandResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if check and not result.ok:
            raise CollaboratorFailure(
                f"Command failed with exit code {result.returncode}: {' '.join(command)}",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        return result
