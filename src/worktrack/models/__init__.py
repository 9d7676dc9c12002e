"""Data models for repository activity tracking."""

from worktrack.models.activity import LogEntry
from worktrack.models.config import (
    DEFAULT_TASK_ID_PATTERN,
    RepositoryConfig,
    Settings,
    TrackerConfig,
)
from worktrack.models.snapshot import (
    STATUS_ERROR_SENTINEL,
    BranchSnapshot,
    BranchState,
    DiffStat,
)

__all__ = [
    "BranchSnapshot",
    "BranchState",
    "DiffStat",
    "STATUS_ERROR_SENTINEL",
    "LogEntry",
    "RepositoryConfig",
    "TrackerConfig",
    "Settings",
    "DEFAULT_TASK_ID_PATTERN",
]
