"""Fleet-wide audit loop."""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..adapters.git import GitAdapter
from ..config import Settings, get_settings
from ..errors import ClassificationInputMissing, CollaboratorFailure
from ..logging import get_logger, log_audit_event
from ..models.signals import AuditFailure, AuditRecord, FleetSummary
from ..storage.journal import Journal
from .classifier import aggregate, build_record
from .collector import SignalCollector

logger = get_logger(__name__)

AuditOutcome = Union[AuditRecord, AuditFailure]


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:8]}"


@dataclass
class FleetAuditResult:
    """Records, failures and summary of one fleet audit run."""

    run_id: str
    summary: FleetSummary
    records: List[AuditRecord] = field(default_factory=list)
    failures: List[AuditFailure] = field(default_factory=list)
    report_path: Optional[Path] = None

    def outcomes(self) -> List[AuditOutcome]:
        return [*self.records, *self.failures]


class FleetAuditor:
    """Audits repositories one at a time, in list order."""

    def __init__(
        self,
        collector: Optional[SignalCollector] = None,
        git: Optional[GitAdapter] = None,
        settings: Optional[Settings] = None,
        update_checkouts: bool = False,
    ):
        self.settings = settings or get_settings()
        self.collector = collector or SignalCollector(settings=self.settings)
        self.git = git or GitAdapter(settings=self.settings)
        self.update_checkouts = update_checkouts

    def run(self, repositories: Iterable[str], run_id: Optional[str] = None) -> FleetAuditResult:
        run_id = run_id or new_run_id()
        journal = Journal(self.settings.reports_dir / f"audit-{run_id}.jsonl")

        records: List[AuditRecord] = []
        failures: List[AuditFailure] = []

        repositories = list(repositories)
        logger.info("Starting fleet audit", run_id=run_id, repositories=len(repositories))

        for repository in repositories:
            outcome = self.audit_repository(repository)
            if isinstance(outcome, AuditFailure):
                failures.append(outcome)
            else:
                records.append(outcome)
            journal.append_record(outcome)

        summary = aggregate(records, failures)
        journal.append_record(summary)

        logger.info(
            "Fleet audit completed",
            run_id=run_id,
            report=str(journal.path),
            **summary.counts(),
        )
        return FleetAuditResult(
            run_id=run_id,
            summary=summary,
            records=records,
            failures=failures,
            report_path=journal.path,
        )

    def audit_repository(self, repository: str) -> AuditOutcome:
        """Audit one repository; collection problems become an AuditFailure."""
        if self.update_checkouts:
            try:
                self.git.ensure_checkout(repository)
            except CollaboratorFailure as e:
                failure = AuditFailure(repository=repository, reason=f"clone/update failed: {e}")
                log_audit_event(logger, repository, status="failed", reason=failure.reason)
                return failure

        try:
            signals = self.collector.collect(repository)
        except ClassificationInputMissing as e:
            failure = AuditFailure(repository=repository, reason=e.reason)
            log_audit_event(logger, repository, status="failed", reason=failure.reason)
            return failure

        record = build_record(repository, signals)
        log_audit_event(
            logger,
            repository,
            status="ok",
            tier=record.tier,
            package_manager=signals.package_manager,
            vulnerabilities=signals.vulnerability_count,
            lifecycle_scripts=signals.has_lifecycle_scripts,
            risk_packages=list(signals.risk_packages),
        )
        return record
