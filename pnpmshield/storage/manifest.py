"""Read and write ``package.json`` manifests."""

import json
from pathlib import Path
from typing import Any, Dict

from ..errors import ConfigurationError

MANIFEST_NAME = "package.json"


def read_manifest(path: Path) -> Dict[str, Any]:
    """Load a manifest, keeping its key order.

    Raises:
        FileNotFoundError: If the manifest does not exist.
        ConfigurationError: If it is not a JSON object.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"Manifest {path} is not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Manifest {path} must be a JSON object")
    return data


def write_manifest(path: Path, data: Dict[str, Any]) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
