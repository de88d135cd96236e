"""Data models for pnpmshield."""

from .migration import BackupSnapshot, MigrationStep, MigrationTrace, StepName, StepOutcome
from .package import PackageDescriptor
from .policy import AuditLogEntry, PolicyAction, PolicyList
from .signals import (
    AuditFailure,
    AuditRecord,
    FleetSummary,
    PackageManager,
    RepositorySignals,
    RiskTier,
    TIER_PRIORITY,
)

__all__ = [
    "AuditFailure",
    "AuditLogEntry",
    "AuditRecord",
    "BackupSnapshot",
    "FleetSummary",
    "MigrationStep",
    "MigrationTrace",
    "PackageDescriptor",
    "PackageManager",
    "PolicyAction",
    "PolicyList",
    "RepositorySignals",
    "RiskTier",
    "StepName",
    "StepOutcome",
    "TIER_PRIORITY",
]
