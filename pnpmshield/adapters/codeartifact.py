"""AWS CodeArtifact registry authentication."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

from ..config import Settings, get_settings
from ..errors import CollaboratorFailure
from ..logging import get_logger
from .pnpm import PnpmAdapter

logger = get_logger(__name__)

PUBLIC_REGISTRY = "https://registry.npmjs.org/"


@dataclass(frozen=True)
class RegistryCredentials:
    endpoint: str
    token: str

    @property
    def auth_prefix(self) -> str:
        """npm config key prefix for this registry, e.g. ``//host/path/``."""
        parsed = urlparse(self.endpoint)
        path = parsed.path if parsed.path.endswith("/") else f"{parsed.path}/"
        return f"//{parsed.netloc}{path}"

    def __repr__(self) -> str:
        return f"RegistryCredentials(endpoint={self.endpoint!r}, token='***')"


class CodeArtifactAuthenticator:
    """Fetches CodeArtifact credentials and points pnpm at them."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[Callable[..., Any]] = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory

    def fetch_credentials(self) -> RegistryCredentials:
        """Request an authorization token and the npm endpoint.

        Raises:
            CollaboratorFailure: If AWS rejects the request or is unreachable.
        """
        import boto3
        from botocore.exceptions import BotoCoreError, ClientError

        settings = self.settings
        try:
            session_factory = self.session_factory or boto3.Session
            session = session_factory(
                profile_name=settings.aws_profile,
                region_name=settings.aws_region,
            )
            client = session.client("codeartifact")
            token = client.get_authorization_token(
                domain=settings.codeartifact_domain,
                domainOwner=settings.codeartifact_domain_owner,
            )["authorizationToken"]
            endpoint = client.get_repository_endpoint(
                domain=settings.codeartifact_domain,
                domainOwner=settings.codeartifact_domain_owner,
                repository=settings.codeartifact_repository,
                format="npm",
            )["repositoryEndpoint"]
        except (BotoCoreError, ClientError) as e:
            raise CollaboratorFailure(
                f"CodeArtifact authorization failed: {e}",
                command=["codeartifact", "get-authorization-token"],
            ) from e

        logger.info(
            "CodeArtifact credentials fetched",
            domain=settings.codeartifact_domain,
            repository=settings.codeartifact_repository,
            endpoint=endpoint,
        )
        return RegistryCredentials(endpoint=endpoint, token=token)

    def configure_pnpm(self, pnpm: PnpmAdapter, repo_path: Optional[Path] = None) -> List[str]:
        """Route organization scopes to CodeArtifact; returns the configured scopes."""
        credentials = self.fetch_credentials()

        pnpm.set_config("registry", PUBLIC_REGISTRY, repo_path)
        for namespace in self.settings.codeartifact_namespaces:
            pnpm.set_config(f"{namespace}:registry", credentials.endpoint, repo_path)
        pnpm.set_config(f"{credentials.auth_prefix}:always-auth", "true", repo_path)
        pnpm.set_config(f"{credentials.auth_prefix}:_authToken", credentials.token, repo_path)

        return list(self.settings.codeartifact_namespaces)
