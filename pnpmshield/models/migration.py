"""Migration trace data models for pnpmshield."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from dataclasses_json import DataClassJsonMixin, config

# Type aliases
StepName = Literal[
    'Setup',
    'Audit',
    'Cleanup',
    'ConfigInstall',
    'ManifestUpdate',
    'RegistryAuth',
    'Install',
    'Verify',
    'BuildTest',
    'Commit',
]
StepOutcome = Literal['OK', 'WARNING', 'FAILED']


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _encode_optional(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _decode_optional(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True, slots=True)
class MigrationStep(DataClassJsonMixin):
    """Recorded outcome of one migration step."""

    name: StepName
    outcome: StepOutcome
    detail: str
    notes: Tuple[str, ...] = field(default=())
    recorded_at: datetime = field(
        default_factory=_utcnow,
        metadata=config(encoder=datetime.isoformat, decoder=datetime.fromisoformat)
    )

    def __post_init__(self) -> None:
        if self.outcome not in ('OK', 'WARNING', 'FAILED'):
            raise ValueError(f"Invalid step outcome: {self.outcome}")

    @property
    def is_failed(self) -> bool:
        return self.outcome == 'FAILED'


@dataclass(slots=True)
class MigrationTrace(DataClassJsonMixin):
    """Per-repository sequence of migration step outcomes."""

    run_id: str
    repository: str
    started_at: datetime = field(
        default_factory=_utcnow,
        metadata=config(encoder=datetime.isoformat, decoder=datetime.fromisoformat)
    )
    steps: List[MigrationStep] = field(default_factory=list)
    backup_dir: Optional[str] = field(default=None)
    ended_at: Optional[datetime] = field(
        default=None,
        metadata=config(encoder=_encode_optional, decoder=_decode_optional)
    )

    def __post_init__(self) -> None:
        if not self.run_id:
            raise ValueError("Run ID cannot be empty")
        if not self.repository:
            raise ValueError("Repository cannot be empty")

    def record(self, step: MigrationStep) -> None:
        """Append a step outcome; a finished trace accepts no more steps."""
        if self.is_terminal:
            raise RuntimeError(f"Migration trace for {self.repository} is already terminal")
        self.steps.append(step)

    def complete(self) -> None:
        self.ended_at = _utcnow()

    @property
    def is_terminal(self) -> bool:
        return self.ended_at is not None

    @property
    def aborted(self) -> bool:
        return any(step.is_failed for step in self.steps)

    @property
    def warnings(self) -> List[MigrationStep]:
        return [step for step in self.steps if step.outcome == 'WARNING']

    @property
    def is_successful(self) -> bool:
        return self.is_terminal and not self.aborted

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self.steps]

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.ended_at:
            return (self.ended_at - self.started_at).total_seconds()
        return None


@dataclass(frozen=True, slots=True)
class BackupSnapshot(DataClassJsonMixin):
    """Pre-cleanup snapshot of lock files and the manifest's scripts."""

    path: str
    lock_files: Tuple[str, ...] = field(default=())
    scripts_file: Optional[str] = field(default=None)

    @property
    def has_lock_file(self) -> bool:
        return bool(self.lock_files)
