"""Load the script policy from a JSON file or from settings.

A policy file looks like::

    {"allow": ["esbuild", "@myorg/*"], "deny": ["colors"]}

Both keys are optional and default to empty lists.
"""

import json
from pathlib import Path
from typing import Optional, Union

from ..config import Settings, get_settings
from ..errors import ConfigurationError
from ..logging import get_logger
from ..models.policy import PolicyList

logger = get_logger(__name__)

# Name of the policy file exported into a migrated repository
POLICY_FILE_NAME = "pnpmshield-policy.json"


def load_policy_file(path: Union[str, Path]) -> PolicyList:
    """Load and validate a policy file.

    Raises:
        ConfigurationError: If the file cannot be read or contains invalid data.
    """
    policy_path = Path(path)

    if not policy_path.exists():
        raise ConfigurationError(f"Policy file not found: {policy_path}")

    try:
        content = policy_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read policy file: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in policy file: {exc}") from exc

    policy = PolicyList.from_mapping(data)
    logger.debug("Loaded policy file", path=str(policy_path), allow=len(policy.allow), deny=len(policy.deny))
    return policy


def load_policy(path: Union[str, Path, None] = None, settings: Optional[Settings] = None) -> PolicyList:
    """Resolve the policy for this run.

    Priority:
    1. Explicit path argument
    2. ``settings.policy_file``
    3. ``settings.allow_patterns`` / ``settings.deny_patterns``
    """
    if path is not None:
        return load_policy_file(path)

    settings = settings or get_settings()
    if settings.policy_file is not None:
        return load_policy_file(settings.policy_file)

    return PolicyList.from_iterables(allow=settings.allow_patterns, deny=settings.deny_patterns)


def write_policy_file(policy: PolicyList, path: Path) -> None:
    path.write_text(json.dumps(policy.to_dict(), indent=2) + "\n", encoding="utf-8")
