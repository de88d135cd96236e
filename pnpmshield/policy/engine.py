"""Lifecycle script policy for dependency packages.

``sanitize`` decides, for one dependency manifest, whether its lifecycle
scripts may run. It never mutates its input and never writes anything: the
decision comes back as a new descriptor plus the audit entries describing it.

Rules, in order:

0. Packages under the organization's trusted namespace pass through untouched.
1. A package matching the deny list is blocked: it keeps its name and
   version, and loses its dependencies and scripts.
2. A package matching an allow pattern keeps its scripts; declared lifecycle
   scripts are recorded with ``ALLOWED_SCRIPTS``.
3. Anything else loses every reserved lifecycle script, one
   ``REMOVED_SCRIPT`` entry per script.
"""

import json
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from ..models.package import PackageDescriptor
from ..models.policy import AuditLogEntry, PolicyList, WILDCARD_SUFFIX

LIFECYCLE_SCRIPTS: Tuple[str, ...] = (
    'install',
    'postinstall',
    'preinstall',
    'prepare',
    'prepublish',
    'prepublishOnly',
    'prepack',
    'postpack',
)

Clock = Callable[[], datetime]


class MonotonicClock:
    """UTC timestamps that never go backwards within one process."""

    def __init__(self, source: Optional[Clock] = None):
        self._source = source or (lambda: datetime.now(timezone.utc))
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            now = self._source()
            if self._last is not None and now < self._last:
                now = self._last + timedelta(microseconds=1)
            self._last = now
            return now


_default_clock = MonotonicClock()


def matches_pattern(pattern: str, package_name: str) -> bool:
    """Match a package name against an exact name or ``@scope/*``.

    The wildcard prefix keeps the ``/`` so ``@scope/*`` never matches
    ``@scope-other/pkg``.
    """
    if pattern.endswith(WILDCARD_SUFFIX):
        return package_name.startswith(pattern[:-1])
    return package_name == pattern


def matches_any(patterns: Tuple[str, ...], package_name: str) -> bool:
    return any(matches_pattern(pattern, package_name) for pattern in patterns)


def in_namespace(namespace: Optional[str], package_name: str) -> bool:
    if not namespace:
        return False
    return package_name.startswith(namespace.rstrip('/') + '/')


def sanitize(
    pkg: PackageDescriptor,
    policy: PolicyList,
    *,
    trusted_namespace: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> Tuple[PackageDescriptor, List[AuditLogEntry]]:
    """Apply the script policy to one package descriptor.

    Returns the descriptor to install (``pkg`` itself when nothing changes)
    and the audit entries for the decision.
    """
    if not isinstance(pkg, PackageDescriptor):
        pkg = PackageDescriptor.from_manifest(pkg)
    clock = clock or _default_clock

    if in_namespace(trusted_namespace, pkg.name):
        return pkg, []

    if matches_any(policy.deny, pkg.name):
        blocked = PackageDescriptor(
            name=pkg.name,
            version=pkg.version,
            scripts={},
            dependencies={},
            dev_dependencies={},
        )
        entry = AuditLogEntry(
            timestamp=clock(),
            action='BLOCKED_PACKAGE',
            package_name=pkg.name,
            detail='Package entirely blocked',
            script='ALL',
        )
        return blocked, [entry]

    declared = [name for name in LIFECYCLE_SCRIPTS if pkg.declares_script(name)]

    if matches_any(policy.allow, pkg.name):
        if not declared:
            return pkg, []
        entry = AuditLogEntry(
            timestamp=clock(),
            action='ALLOWED_SCRIPTS',
            package_name=pkg.name,
            detail=json.dumps(pkg.scripts, sort_keys=True),
            script='LIFECYCLE',
        )
        return pkg, [entry]

    if not declared:
        return pkg, []

    entries: List[AuditLogEntry] = []
    for name in declared:
        entries.append(
            AuditLogEntry(
                timestamp=clock(),
                action='REMOVED_SCRIPT',
                package_name=pkg.name,
                detail=pkg.scripts[name],
                script=name,
            )
        )
    remaining = {name: command for name, command in pkg.scripts.items() if name not in declared}
    return replace(pkg, scripts=remaining), entries
