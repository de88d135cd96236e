"""Risk tier classification and fleet aggregation."""

from typing import Dict, List, Sequence

from ..models.signals import (
    AuditFailure,
    AuditRecord,
    FleetSummary,
    RepositorySignals,
    RiskTier,
    TIER_PRIORITY,
)

# Vulnerability count above which a repository is HIGH on count alone
HIGH_VULNERABILITY_THRESHOLD = 10


def classify(signals: RepositorySignals) -> RiskTier:
    """Map repository signals to a risk tier.

    Rules, first match wins:

    1. Any lifecycle script, any known-risk package, or more than
       ``HIGH_VULNERABILITY_THRESHOLD`` vulnerabilities: ``HIGH``.
    2. At least one vulnerability: ``MEDIUM``.
    3. Otherwise ``LOW``.
    """
    if (
        signals.has_lifecycle_scripts
        or signals.has_risk_package
        or signals.vulnerability_count > HIGH_VULNERABILITY_THRESHOLD
    ):
        return 'HIGH'
    if signals.vulnerability_count > 0:
        return 'MEDIUM'
    return 'LOW'


def build_record(repository: str, signals: RepositorySignals) -> AuditRecord:
    return AuditRecord.from_signals(repository, signals, classify(signals))


def aggregate(
    records: Sequence[AuditRecord],
    failures: Sequence[AuditFailure] = (),
) -> FleetSummary:
    """Count tiers and order repositories HIGH, MEDIUM, LOW.

    Within a tier the original audit order is kept. Failures are listed
    separately and never counted in a tier.
    """
    groups: Dict[str, List[str]] = {tier: [] for tier in TIER_PRIORITY}
    for record in records:
        groups[record.tier].append(record.repository)

    prioritized: List[str] = []
    for tier in TIER_PRIORITY:
        prioritized.extend(groups[tier])

    return FleetSummary(
        high_count=len(groups['HIGH']),
        medium_count=len(groups['MEDIUM']),
        low_count=len(groups['LOW']),
        prioritized_order=tuple(prioritized),
        failed=tuple(failure.repository for failure in failures),
    )
