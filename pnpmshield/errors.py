"""Error taxonomy for pnpmshield."""

from typing import Optional, Sequence


class PnpmShieldError(Exception):
    """Base class for all pnpmshield errors."""


class ConfigurationError(PnpmShieldError, ValueError):
    """Raised for a malformed policy list, package descriptor or setting."""


class CollaboratorFailure(PnpmShieldError):
    """An external tool or process did not complete."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr


class ClassificationInputMissing(PnpmShieldError):
    """Signals could not be collected for a repository."""

    def __init__(self, repository: str, reason: str):
        super().__init__(f"{repository}: {reason}")
        self.repository = repository
        self.reason = reason
