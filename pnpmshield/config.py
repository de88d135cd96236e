"""Configuration management for pnpmshield."""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOW_PATTERNS = [
    # Build tools
    "esbuild",
    "@swc/core",
    "@swc/wasm",
    "rollup",
    "vite",
    # Native binaries
    "sharp",
    "canvas",
    "node-sass",
    "sass",
    "bcrypt",
    "argon2",
    "sqlite3",
    "better-sqlite3",
    # Font and image processing
    "fontmin",
    "imagemin",
    "mozjpeg",
    "pngquant-bin",
    # Browser automation
    "puppeteer",
    "playwright",
    "chromedriver",
    # Git hooks
    "husky",
    "lefthook",
    # Organization scopes
    "@stonal-tech/*",
    "@lfn/*",
    "@stonal/*",
    "@lfn-tech/*",
]

DEFAULT_DENY_PATTERNS = [
    "qix",
    "colors",
    "chalk",
    "ua-parser-js",
    "coa",
    "rc",
]

DEFAULT_RISK_PACKAGES = ["qix", "colors", "chalk", "node-fetch", "request", "lodash"]


class Settings(BaseSettings):
    """pnpmshield configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="PNPMSHIELD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="dev", description="Environment: dev, prod")

    # Filesystem layout
    projects_dir: Path = Field(
        default=Path.home() / "projects",
        description="Directory holding the repository checkouts"
    )
    configs_dir: Path = Field(
        default=Path.home() / ".pnpmshield" / "configs",
        description="Directory holding the .npmrc and .pnpmfile.cjs templates"
    )
    reports_dir: Path = Field(
        default=Path.home() / ".pnpmshield" / "reports",
        description="Directory for audit reports, migration traces and the audit log"
    )
    backups_dir: Path = Field(
        default=Path.home() / ".pnpmshield" / "backups",
        description="Directory for per-run pre-migration snapshots"
    )
    audit_log_name: str = Field(
        default="pnpmfile-actions.log",
        description="File name of the script policy audit log inside reports_dir"
    )

    # Fleet
    github_org: str = Field(default="stonal-tech", description="GitHub organization owning the fleet")
    repositories: List[str] = Field(
        default_factory=list,
        description="Repositories covered by a fleet run, in audit order"
    )
    risk_packages: List[str] = Field(
        default_factory=lambda: list(DEFAULT_RISK_PACKAGES),
        description="Dependencies that mark a repository as high risk"
    )

    # Script policy
    allow_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOW_PATTERNS),
        description="Packages allowed to keep lifecycle scripts"
    )
    deny_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DENY_PATTERNS),
        description="Packages blocked outright"
    )
    policy_file: Optional[Path] = Field(
        default=None,
        description="JSON policy file overriding allow_patterns/deny_patterns"
    )
    trusted_namespace: Optional[str] = Field(
        default="@stonal-tech",
        description="Organization scope exempt from script policy"
    )

    # Migration
    pnpm_version: str = Field(default="9.15.0", description="pnpm version pinned in packageManager")
    migration_branch: str = Field(default="chore/pnpm-migration", description="Git branch for the migration")
    commit_message: str = Field(
        default=(
            "chore: migrate to pnpm for enhanced security\n\n"
            "- Add pnpm as package manager\n"
            "- Configure ignore-scripts for security\n"
            "- Add preinstall script to enforce pnpm\n"
            "- Update lock file to pnpm-lock.yaml\n"
            "- Configure .npmrc for CodeArtifact and npm registry\n"
            "- Add script allow-list via .pnpmfile.cjs"
        ),
        description="Commit message for the migration commit"
    )

    # CodeArtifact
    aws_profile: Optional[str] = Field(default=None, description="AWS profile name")
    aws_region: str = Field(default="us-east-1", description="AWS region")
    codeartifact_domain: str = Field(default="lfn-artifactory", description="CodeArtifact domain")
    codeartifact_domain_owner: str = Field(default="983974232060", description="CodeArtifact domain owner")
    codeartifact_repository: str = Field(default="avatar", description="CodeArtifact repository")
    codeartifact_namespaces: List[str] = Field(
        default_factory=lambda: ["@stonal-tech", "@lfn", "@stonal", "@lfn-tech"],
        description="npm scopes served from CodeArtifact"
    )

    # Timeouts
    audit_timeout: int = Field(default=600, description="Vulnerability scanner timeout in seconds")
    install_timeout: int = Field(default=1800, description="pnpm install timeout in seconds")
    build_timeout: int = Field(default=300, description="Build test timeout in seconds")
    command_timeout: int = Field(default=120, description="Timeout for short git/pnpm commands in seconds")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="json",
        description="Log format: json, console"
    )

    @property
    def audit_log_path(self) -> Path:
        return self.reports_dir / self.audit_log_name

    def repository_path(self, repository: str) -> Path:
        return self.projects_dir / repository


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (for testing)."""
    global _settings
    _settings = None
