"""Installer-facing wrapper around the script policy engine."""

from typing import Any, Dict, List, Optional

from ..logging import get_logger, log_policy_action
from ..models.package import PackageDescriptor
from ..models.policy import AuditLogEntry, PolicyList
from ..storage.journal import Journal
from .engine import Clock, MonotonicClock, sanitize

logger = get_logger(__name__)


class ScriptPolicyHook:
    """Applies the policy to each package the installer resolves.

    Every decision is appended to the audit log before the sanitized
    manifest is handed back, so the log never lags the install.
    """

    def __init__(
        self,
        policy: PolicyList,
        journal: Journal,
        trusted_namespace: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        self.policy = policy
        self.journal = journal
        self.trusted_namespace = trusted_namespace
        self.clock = clock or MonotonicClock()

    def read_package(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize one resolved manifest.

        Raises:
            ConfigurationError: If the manifest is malformed. The caller
                decides whether to abort the install or skip the package.
        """
        descriptor = PackageDescriptor.from_manifest(manifest)
        sanitized, entries = sanitize(
            descriptor,
            self.policy,
            trusted_namespace=self.trusted_namespace,
            clock=self.clock,
        )
        self._record(entries)
        return sanitized.to_manifest()

    def after_all_resolved(self) -> AuditLogEntry:
        entry = AuditLogEntry.completed(self.clock())
        self._record([entry])
        return entry

    def _record(self, entries: List[AuditLogEntry]) -> None:
        if not entries:
            return
        self.journal.append_many(entry.to_line() for entry in entries)
        for entry in entries:
            log_policy_action(logger, entry.action, entry.package_name, script=entry.script)
