"""Data models for point-in-time git observations."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

# Stored instead of the porcelain text when `git status` itself fails, so an
# unreadable working tree never looks like a clean one.
STATUS_ERROR_SENTINEL = "<<ERROR_GIT_STATUS_FAILED>>"


class DiffStat(BaseModel):
    """Added/deleted line counts for a single file."""

    added: int = Field(0, description="Number of lines added")
    deleted: int = Field(0, description="Number of lines deleted")


class BranchSnapshot(BaseModel):
    """Observable state of one (repository, branch) pair at a point in time."""

    working_tree_status: str = Field(
        ..., description="Raw `git status --porcelain` output or the error sentinel"
    )
    head_commit_hash: Optional[str] = Field(None, description="Commit SHA of the tracked branch")
    base_commit_hash: Optional[str] = Field(None, description="Commit SHA of the base branch")
    files_changed_vs_base: Optional[List[str]] = Field(
        None, description="Files differing between base and head, in git output order"
    )
    commits_ahead_of_base: Optional[List[str]] = Field(
        None, description="Commits reachable from head but not from base"
    )
    committed_diff_stats: Optional[Dict[str, DiffStat]] = Field(
        None, description="Per-file stats for base...head"
    )
    working_tree_diff_stats: Optional[Dict[str, DiffStat]] = Field(
        None, description="Per-file stats for uncommitted, staged and untracked changes"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def commits_ahead_count(self) -> int:
        """Number of commits ahead of base (0 when unknown)."""
        return len(self.commits_ahead_of_base) if self.commits_ahead_of_base else 0

    @property
    def status_failed(self) -> bool:
        return self.working_tree_status == STATUS_ERROR_SENTINEL


class BranchState(BranchSnapshot):
    """Persisted snapshot plus the last time this branch caused a log entry."""

    last_log_timestamp: int = Field(
        0, description="Epoch milliseconds of the last logging event (0 = never)"
    )

    @classmethod
    def from_snapshot(cls, snapshot: BranchSnapshot, last_log_timestamp: int) -> "BranchState":
        data = snapshot.model_dump(exclude={"commits_ahead_count"})
        return cls(**data, last_log_timestamp=last_log_timestamp)
