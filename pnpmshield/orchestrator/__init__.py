"""Migration orchestration."""

from .migration import MigrationPipeline, SecureMigration
from .state_machine import (
    FATAL_STEPS,
    STEP_ORDER,
    MigrationStateMachine,
    StepFailed,
    StepReport,
)

__all__ = [
    "FATAL_STEPS",
    "STEP_ORDER",
    "MigrationPipeline",
    "MigrationStateMachine",
    "SecureMigration",
    "StepFailed",
    "StepReport",
]
