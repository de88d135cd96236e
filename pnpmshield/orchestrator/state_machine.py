"""Linear migration state machine.

The step order and which steps are fatal are declared data. A fatal step
that fails ends the migration; any other step that fails is recorded as a
warning and the next step runs. Steps are never retried or revisited.
"""

import subprocess
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Literal, Mapping, Optional, Tuple

from ..errors import PnpmShieldError
from ..logging import get_logger, log_migration_event
from ..models.migration import MigrationStep, MigrationTrace, StepName
from ..storage.journal import Journal

logger = get_logger(__name__)

STEP_ORDER: Tuple[StepName, ...] = (
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
)

FATAL_STEPS: FrozenSet[StepName] = frozenset({'Setup', 'ConfigInstall', 'ManifestUpdate'})

# Failures a step handler may raise; anything else is a bug and propagates
STEP_ERRORS = (PnpmShieldError, OSError, ValueError, subprocess.SubprocessError)


class StepFailed(PnpmShieldError):
    """Raised by a step handler to report failure with a readable detail."""


@dataclass(frozen=True)
class StepReport:
    """What a handler returns when it completes."""

    outcome: Literal['OK', 'WARNING'] = 'OK'
    detail: str = ''
    notes: Tuple[str, ...] = field(default=())

    @classmethod
    def ok(cls, detail: str, *notes: str) -> 'StepReport':
        return cls(outcome='OK', detail=detail, notes=tuple(notes))

    @classmethod
    def warning(cls, detail: str, *notes: str) -> 'StepReport':
        return cls(outcome='WARNING', detail=detail, notes=tuple(notes))


StepHandler = Callable[[], StepReport]


class MigrationStateMachine:
    """Runs step handlers in order and records each outcome in the trace."""

    def __init__(
        self,
        trace: MigrationTrace,
        handlers: Mapping[StepName, StepHandler],
        journal: Optional[Journal] = None,
        order: Tuple[StepName, ...] = STEP_ORDER,
        fatal_steps: FrozenSet[StepName] = FATAL_STEPS,
    ):
        missing = [name for name in order if name not in handlers]
        if missing:
            raise ValueError(f"No handler for steps: {', '.join(missing)}")
        self.trace = trace
        self.handlers = handlers
        self.journal = journal
        self.order = order
        self.fatal_steps = fatal_steps

    def run(self) -> MigrationTrace:
        if self.trace.is_terminal:
            raise RuntimeError(f"Migration of {self.trace.repository} already finished")

        for name in self.order:
            step = self._execute(name)
            self._record(step)
            if step.is_failed:
                logger.error(
                    "Migration aborted",
                    run_id=self.trace.run_id,
                    repository=self.trace.repository,
                    step=name,
                )
                break

        self.trace.complete()
        return self.trace

    def _execute(self, name: StepName) -> MigrationStep:
        log_migration_event(logger, self.trace.run_id, self.trace.repository, name)
        try:
            report = self.handlers[name]()
        except STEP_ERRORS as e:
            outcome = 'FAILED' if name in self.fatal_steps else 'WARNING'
            return MigrationStep(name=name, outcome=outcome, detail=str(e) or type(e).__name__)

        return MigrationStep(
            name=name,
            outcome=report.outcome,
            detail=report.detail,
            notes=report.notes,
        )

    def _record(self, step: MigrationStep) -> None:
        self.trace.record(step)
        if self.journal is not None:
            self.journal.append_record(step)
        log_migration_event(
            logger,
            self.trace.run_id,
            self.trace.repository,
            step.name,
            outcome=step.outcome,
            detail=step.detail,
        )
