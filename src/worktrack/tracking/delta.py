"""Change detection between two observations of a branch.

Compares a fresh snapshot against the stored state along several independent
dimensions. Each dimension is compared structurally:

- lists keep their git output order, so a reordering counts as a change
- None (query not meaningful or failed) is distinct from an empty result
- diff stat maps are compared by key set and per-file counts
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from worktrack.models import BranchSnapshot, BranchState

SNAPSHOT_DIMENSIONS: Tuple[str, ...] = (
    "working_tree_status",
    "head_commit_hash",
    "base_commit_hash",
    "files_changed_vs_base",
    "commits_ahead_of_base",
    "commits_ahead_count",
    "working_tree_diff_stats",
    "committed_diff_stats",
)


@dataclass(frozen=True)
class ChangeReport:
    """Outcome of comparing a snapshot with the stored branch state."""

    first_sight: bool
    changed_dimensions: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def changed(self) -> bool:
        return bool(self.changed_dimensions)


class ChangeDetector:
    """Decides whether anything happened on a branch since the last look."""

    def __init__(self, dimensions: Tuple[str, ...] = SNAPSHOT_DIMENSIONS):
        self.dimensions = dimensions

    def compare(
        self, previous: Optional[BranchState], current: BranchSnapshot
    ) -> ChangeReport:
        """Compare a snapshot with the previous state.

        Args:
            previous: Stored state, or None if the branch was never observed
            current: Fresh snapshot

        Returns:
            ChangeReport. First sight never reports a change: it only
            establishes a baseline.
        """
        if previous is None:
            return ChangeReport(first_sight=True)

        changed = tuple(
            name
            for name in self.dimensions
            if getattr(previous, name) != getattr(current, name)
        )
        return ChangeReport(first_sight=False, changed_dimensions=changed)

    def has_changed(
        self, previous: Optional[BranchState], current: BranchSnapshot
    ) -> bool:
        return self.compare(previous, current).changed
