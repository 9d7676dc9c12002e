"""Repository activity tracking.

Detects work on git branches between ticks and turns it into time entries,
logging at most once per tracking interval per branch.
"""

from worktrack.tracking.delta import SNAPSHOT_DIMENSIONS, ChangeDetector, ChangeReport
from worktrack.tracking.engine import (
    LOG_INTERVAL_LEEWAY_MS,
    AttributionDecision,
    RepositoryObservation,
    TickResult,
    TimeAttributionEngine,
)
from worktrack.tracking.scheduler import PeriodicScheduler
from worktrack.tracking.state import RepositoryStateStore
from worktrack.tracking.task_id import build_task_url, extract_task_id

__all__ = [
    "ChangeDetector",
    "ChangeReport",
    "SNAPSHOT_DIMENSIONS",
    "TimeAttributionEngine",
    "RepositoryObservation",
    "AttributionDecision",
    "TickResult",
    "LOG_INTERVAL_LEEWAY_MS",
    "PeriodicScheduler",
    "RepositoryStateStore",
    "extract_task_id",
    "build_task_url",
]
