"""Migration operations: reconciliation, scheduling and the pipeline."""

from .backoff import BackoffState, ThrottleBackoff
from .migration import MigrationConfig, format_report, run_migration
from .reconciler import Reconciler
from .scheduler import MigrationScheduler, ProgressCounters, TaskState, WorkItem

__all__ = [
    "BackoffState",
    "ThrottleBackoff",
    "MigrationConfig",
    "format_report",
    "run_migration",
    "Reconciler",
    "MigrationScheduler",
    "ProgressCounters",
    "TaskState",
    "WorkItem",
]
