"""Dependency package descriptor model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from dataclasses_json import DataClassJsonMixin

from ..errors import ConfigurationError

# Manifest keys modelled explicitly; everything else is carried in ``extra``
_MODELLED_KEYS = ('name', 'version', 'scripts', 'dependencies', 'devDependencies')


def _string_map(manifest: Mapping[str, Any], key: str, package: str) -> Optional[Dict[str, str]]:
    value = manifest.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Package {package!r} has a non-object '{key}' field")
    result: Dict[str, str] = {}
    for item_key, item_value in value.items():
        if not isinstance(item_key, str) or not isinstance(item_value, str):
            raise ConfigurationError(
                f"Package {package!r} has a non-string entry in '{key}': {item_key!r}"
            )
        result[item_key] = item_value
    return result


@dataclass(frozen=True, slots=True)
class PackageDescriptor(DataClassJsonMixin):
    """A dependency manifest as seen by the installer's resolution hook.

    Maps are ``None`` when the manifest does not declare them and ``{}`` when
    it declares them empty, so ``to_manifest`` reproduces the input shape.
    """

    name: str
    version: Optional[str] = field(default=None)
    scripts: Optional[Dict[str, str]] = field(default=None)
    dependencies: Optional[Dict[str, str]] = field(default=None)
    dev_dependencies: Optional[Dict[str, str]] = field(default=None)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("Package descriptor is missing 'name'")

    @classmethod
    def from_manifest(cls, manifest: Any) -> PackageDescriptor:
        """Build a descriptor from a parsed ``package.json`` object."""
        if not isinstance(manifest, Mapping):
            raise ConfigurationError("Package manifest must be a JSON object")

        name = manifest.get('name')
        if not isinstance(name, str) or not name:
            raise ConfigurationError("Package descriptor is missing 'name'")

        version = manifest.get('version')
        if version is not None and not isinstance(version, str):
            raise ConfigurationError(f"Package {name!r} has a non-string 'version'")

        return cls(
            name=name,
            version=version,
            scripts=_string_map(manifest, 'scripts', name),
            dependencies=_string_map(manifest, 'dependencies', name),
            dev_dependencies=_string_map(manifest, 'devDependencies', name),
            extra={key: value for key, value in manifest.items() if key not in _MODELLED_KEYS},
        )

    def to_manifest(self) -> Dict[str, Any]:
        """Return the manifest object handed back to the installer."""
        manifest: Dict[str, Any] = {'name': self.name}
        if self.version is not None:
            manifest['version'] = self.version
        manifest.update(self.extra)
        if self.scripts is not None:
            manifest['scripts'] = dict(self.scripts)
        if self.dependencies is not None:
            manifest['dependencies'] = dict(self.dependencies)
        if self.dev_dependencies is not None:
            manifest['devDependencies'] = dict(self.dev_dependencies)
        return manifest

    def to_manifest_json(self) -> str:
        return json.dumps(self.to_manifest(), ensure_ascii=False)

    @property
    def script_names(self) -> tuple:
        return tuple(self.scripts or {})

    def declares_script(self, script_name: str) -> bool:
        return bool(self.scripts) and script_name in self.scripts
