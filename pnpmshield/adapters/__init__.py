"""Adapters for external tools."""

from .codeartifact import CodeArtifactAuthenticator, RegistryCredentials
from .git import GitAdapter
from .pnpm import PnpmAdapter, VulnerabilityScanner
from .process import CommandResult, CommandRunner

__all__ = [
    "CodeArtifactAuthenticator",
    "CommandResult",
    "CommandRunner",
    "GitAdapter",
    "PnpmAdapter",
    "RegistryCredentials",
    "VulnerabilityScanner",
]
