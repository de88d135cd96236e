"""Script policy list and audit log entry models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Literal, Mapping, Tuple

from dataclasses_json import DataClassJsonMixin, config

from ..errors import ConfigurationError

# Type aliases
PolicyAction = Literal['REMOVED_SCRIPT', 'BLOCKED_PACKAGE', 'ALLOWED_SCRIPTS', 'COMPLETED']

POLICY_ACTIONS: Tuple[str, ...] = ('REMOVED_SCRIPT', 'BLOCKED_PACKAGE', 'ALLOWED_SCRIPTS', 'COMPLETED')
WILDCARD_SUFFIX = '/*'
LOG_SEPARATOR = ' | '


def validate_pattern(pattern: Any, list_name: str) -> str:
    """Check one policy entry: an exact package name or ``@scope/*``."""
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigurationError(f"Policy '{list_name}' entries must be non-empty strings: {pattern!r}")
    if pattern != pattern.strip():
        raise ConfigurationError(f"Policy '{list_name}' entry has surrounding whitespace: {pattern!r}")
    if pattern.endswith(WILDCARD_SUFFIX):
        scope = pattern[:-len(WILDCARD_SUFFIX)]
        if not scope.startswith('@') or len(scope) < 2 or '/' in scope or '*' in scope:
            raise ConfigurationError(
                f"Policy '{list_name}' wildcard must look like '@scope/*': {pattern!r}"
            )
    elif '*' in pattern:
        raise ConfigurationError(
            f"Policy '{list_name}' only supports trailing '@scope/*' wildcards: {pattern!r}"
        )
    return pattern


@dataclass(frozen=True, slots=True)
class PolicyList(DataClassJsonMixin):
    """Allow-patterns and deny-list for lifecycle script execution."""

    allow: Tuple[str, ...] = field(default=())
    deny: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        for entry in self.allow:
            validate_pattern(entry, 'allow')
        for entry in self.deny:
            validate_pattern(entry, 'deny')

    @classmethod
    def from_iterables(cls, *, allow: Iterable[str], deny: Iterable[str]) -> PolicyList:
        if isinstance(allow, str) or isinstance(deny, str):
            raise ConfigurationError("Policy 'allow' and 'deny' must be lists of patterns")
        return cls(allow=tuple(allow), deny=tuple(deny))

    @classmethod
    def from_mapping(cls, data: Any) -> PolicyList:
        """Build a policy from ``{"allow": [...], "deny": [...]}``."""
        if not isinstance(data, Mapping):
            raise ConfigurationError("Policy must be a JSON object")
        allow = data.get('allow', [])
        deny = data.get('deny', [])
        if not isinstance(allow, list):
            raise ConfigurationError("Policy 'allow' must be an array")
        if not isinstance(deny, list):
            raise ConfigurationError("Policy 'deny' must be an array")
        return cls(allow=tuple(allow), deny=tuple(deny))

    def to_dict(self, encode_json: bool = False) -> Dict[str, Any]:
        return {'allow': list(self.allow), 'deny': list(self.deny)}


def _format_timestamp(value: datetime) -> str:
    return value.isoformat().replace('+00:00', 'Z')


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@dataclass(frozen=True, slots=True)
class AuditLogEntry(DataClassJsonMixin):
    """One line of the append-only script policy audit log."""

    timestamp: datetime = field(
        metadata=config(encoder=_format_timestamp, decoder=_parse_timestamp)
    )
    action: PolicyAction
    package_name: str
    detail: str
    script: str = field(default='')

    def __post_init__(self) -> None:
        if self.action not in POLICY_ACTIONS:
            raise ValueError(f"Invalid policy action: {self.action}")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")

    def to_line(self) -> str:
        """Render as ``timestamp | action | package | script | detail``."""
        detail = self.detail.replace('\r', ' ').replace('\n', ' ')
        return LOG_SEPARATOR.join(
            [_format_timestamp(self.timestamp), self.action, self.package_name, self.script, detail]
        )

    @classmethod
    def from_line(cls, line: str) -> AuditLogEntry:
        parts = line.rstrip('\n').split(LOG_SEPARATOR, 4)
        if len(parts) != 5:
            raise ValueError(f"Malformed audit log line: {line!r}")
        timestamp, action, package_name, script, detail = parts
        return cls(
            timestamp=_parse_timestamp(timestamp),
            action=action,  # type: ignore[arg-type]
            package_name=package_name,
            detail=detail,
            script=script,
        )

    @classmethod
    def completed(cls, timestamp: datetime | None = None) -> AuditLogEntry:
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            action='COMPLETED',
            package_name='-',
            detail='pnpm install completed with security filtering',
        )
