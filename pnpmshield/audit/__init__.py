"""Repository risk auditing."""

from .classifier import HIGH_VULNERABILITY_THRESHOLD, aggregate, build_record, classify
from .collector import SignalCollector, detect_package_manager
from .fleet import FleetAuditResult, FleetAuditor

__all__ = [
    "FleetAuditResult",
    "FleetAuditor",
    "HIGH_VULNERABILITY_THRESHOLD",
    "SignalCollector",
    "aggregate",
    "build_record",
    "classify",
    "detect_package_manager",
]
