"""Repository signal and audit record models for pnpmshield."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Tuple

from dataclasses_json import DataClassJsonMixin

from ..errors import ConfigurationError

# Type aliases
RiskTier = Literal['LOW', 'MEDIUM', 'HIGH']
PackageManager = Literal['pnpm', 'npm', 'yarn', 'unknown']

TIER_PRIORITY: Tuple[RiskTier, ...] = ('HIGH', 'MEDIUM', 'LOW')


@dataclass(frozen=True, slots=True)
class RepositorySignals(DataClassJsonMixin):
    """Raw supply-chain signals collected for one repository."""

    has_lifecycle_scripts: bool
    vulnerability_count: int
    has_risk_package: bool
    package_manager: PackageManager = field(default='unknown')
    lifecycle_scripts: Tuple[str, ...] = field(default=())
    risk_packages: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate signal data after initialization."""
        count = self.vulnerability_count
        if isinstance(count, bool) or not isinstance(count, int):
            raise ConfigurationError("Vulnerability count must be an integer")
        if count < 0:
            raise ConfigurationError("Vulnerability count cannot be negative")


@dataclass(frozen=True, slots=True)
class AuditRecord(DataClassJsonMixin):
    """Classified audit outcome for one repository in one run."""

    repository: str
    tier: RiskTier
    vulnerability_count: int
    lifecycle_flag: bool
    risk_package_flag: bool
    status: Literal['ok'] = field(default='ok')
    # Report detail only; the tier never depends on these
    package_manager: PackageManager = field(default='unknown')
    lifecycle_scripts: Tuple[str, ...] = field(default=())
    risk_packages: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.repository:
            raise ValueError("Repository cannot be empty")
        if self.tier not in TIER_PRIORITY:
            raise ValueError(f"Invalid risk tier: {self.tier}")

    @classmethod
    def from_signals(cls, repository: str, signals: RepositorySignals, tier: RiskTier) -> AuditRecord:
        return cls(
            repository=repository,
            tier=tier,
            vulnerability_count=signals.vulnerability_count,
            lifecycle_flag=signals.has_lifecycle_scripts,
            risk_package_flag=signals.has_risk_package,
            package_manager=signals.package_manager,
            lifecycle_scripts=signals.lifecycle_scripts,
            risk_packages=signals.risk_packages,
        )


@dataclass(frozen=True, slots=True)
class AuditFailure(DataClassJsonMixin):
    """A repository whose signals could not be collected.

    Failures never carry a tier and are kept out of tier statistics.
    """

    repository: str
    reason: str
    status: Literal['failed'] = field(default='failed')

    def __post_init__(self) -> None:
        if not self.repository:
            raise ValueError("Repository cannot be empty")


@dataclass(frozen=True, slots=True)
class FleetSummary(DataClassJsonMixin):
    """Fleet-wide tier counts and the migration priority order."""

    high_count: int
    medium_count: int
    low_count: int
    prioritized_order: Tuple[str, ...]
    failed: Tuple[str, ...] = field(default=())

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def total(self) -> int:
        return self.high_count + self.medium_count + self.low_count + self.failed_count

    def counts(self) -> Dict[str, Any]:
        return {
            'HIGH': self.high_count,
            'MEDIUM': self.medium_count,
            'LOW': self.low_count,
            'failed': self.failed_count,
        }

    def repositories_for(self, records: List[AuditRecord], tier: RiskTier) -> List[str]:
        """Return repository names of one tier, in priority order."""
        by_name = {record.repository: record.tier for record in records}
        return [name for name in self.prioritized_order if by_name.get(name) == tier]
