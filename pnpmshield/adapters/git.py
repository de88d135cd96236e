"""Git and GitHub CLI adapter."""

from pathlib import Path
from typing import Literal, Optional

from ..config import Settings, get_settings
from ..errors import CollaboratorFailure
from ..logging import get_logger
from .process import CommandRunner

logger = get_logger(__name__)

CheckoutState = Literal['cloned', 'updated', 'stale']


class GitAdapter:
    """Thin wrapper around ``git`` and ``gh`` for repository checkouts."""

    def __init__(self, runner: Optional[CommandRunner] = None, settings: Optional[Settings] = None):
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()

    def ensure_checkout(self, repository: str) -> CheckoutState:
        """Clone a missing repository or bring an existing one up to date.

        Raises:
            CollaboratorFailure: If the repository is missing and cannot be cloned.
        """
        repo_path = self.settings.repository_path(repository)
        timeout = self.settings.command_timeout

        if not repo_path.exists():
            self.settings.projects_dir.mkdir(parents=True, exist_ok=True)
            self.runner.run(
                ["gh", "repo", "clone", f"{self.settings.github_org}/{repository}"],
                cwd=self.settings.projects_dir,
                timeout=timeout,
                check=True,
            )
            logger.info("Cloned repository", repository=repository)
            return 'cloned'

        checkout = self.runner.run(["git", "checkout", "main"], cwd=repo_path, timeout=timeout)
        pull = self.runner.run(["git", "pull"], cwd=repo_path, timeout=timeout) if checkout.ok else None
        if pull is not None and pull.ok:
            logger.info("Updated repository", repository=repository)
            return 'updated'

        logger.warning(
            "Failed to update repository (may not have main branch)",
            repository=repository,
            stderr=(pull or checkout).stderr.strip(),
        )
        return 'stale'

    def checkout_branch(self, repo_path: Path, branch: str) -> Literal['created', 'switched']:
        timeout = self.settings.command_timeout
        if self.runner.run(["git", "checkout", "-b", branch], cwd=repo_path, timeout=timeout).ok:
            return 'created'
        if self.runner.run(["git", "checkout", branch], cwd=repo_path, timeout=timeout).ok:
            return 'switched'
        raise CollaboratorFailure(f"Failed to create or switch to branch {branch}", command=["git", "checkout", branch])

    def commit_all(self, repo_path: Path, message: str) -> bool:
        """Stage everything and commit; returns False when git refuses the commit."""
        timeout = self.settings.command_timeout
        self.runner.run(["git", "add", "-A"], cwd=repo_path, timeout=timeout, check=True)
        result = self.runner.run(["git", "commit", "-m", message], cwd=repo_path, timeout=timeout)
        return result.ok
