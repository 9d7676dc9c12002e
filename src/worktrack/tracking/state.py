"""Persistent per-branch state for the activity tracker.

Stores the last observed snapshot of every (repository, branch) pair together
with the last time that branch caused a log entry. The file layout is a plain
JSON object: ``{repo_path: {branch_name: BranchState}}``.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from worktrack.models import BranchSnapshot, BranchState

logger = structlog.get_logger(__name__)

RepoState = Dict[str, Dict[str, BranchState]]

_repo_state_adapter = TypeAdapter(RepoState)


class RepositoryStateStore:
    """Manages the persisted repository state file.

    The store assumes exclusive ownership of its file between ticks. Writes
    go through a temporary file and an atomic rename so a reader never sees a
    half-written file.
    """

    def __init__(self, state_file: Path):
        """Initialize the state store.

        Args:
            state_file: Path of the JSON state file
        """
        self.state_file = Path(state_file)
        self.state_dir = self.state_file.parent
        self._state: Optional[RepoState] = None

    def _ensure_state_dir(self) -> None:
        """Ensure the state directory exists."""
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> RepoState:
        """Read the state file from disk, replacing anything held in memory.

        A missing file gives an empty state. So does a corrupted one: every
        branch then reverts to first-sight semantics.

        Returns:
            Mapping of repository path to branch states
        """
        self._state = {}

        if not self.state_file.exists():
            return self._state

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._state = _repo_state_adapter.validate_python(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("state_file_unreadable", path=str(self.state_file), error=str(e))
            self._state = {}

        return self._state

    def load_or_create(self) -> RepoState:
        """Return the in-memory state, loading it on first use."""
        if self._state is None:
            return self.load()
        return self._state

    def save(self) -> None:
        """Save the current state to disk using atomic write.

        Raises:
            OSError: If the file cannot be written
        """
        if self._state is None:
            return

        self._ensure_state_dir()

        fd, temp_path = tempfile.mkstemp(
            dir=self.state_dir, prefix=".state_", suffix=".json.tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(_repo_state_adapter.dump_json(self._state, indent=2).decode("utf-8"))

            os.replace(temp_path, self.state_file)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def get_branch_state(self, repo_path: str, branch: str) -> Optional[BranchState]:
        """Get the stored state for a repository and branch.

        Returns:
            BranchState if the branch was observed before, None otherwise
        """
        state = self.load_or_create()
        return state.get(repo_path, {}).get(branch)

    def update_branch_state(
        self,
        repo_path: str,
        branch: str,
        snapshot: BranchSnapshot,
        last_log_timestamp: int,
    ) -> BranchState:
        """Record a new snapshot for a branch (in memory; call save() to persist).

        Args:
            repo_path: Repository path as configured
            branch: Branch name
            snapshot: Snapshot to store
            last_log_timestamp: Epoch milliseconds of the last logging event

        Returns:
            The stored BranchState
        """
        state = self.load_or_create()
        branch_state = BranchState.from_snapshot(snapshot, last_log_timestamp)
        state.setdefault(repo_path, {})[branch] = branch_state
        return branch_state

    def list_repositories(self) -> List[str]:
        state = self.load_or_create()
        return list(state.keys())

    def list_branches(self, repo_path: str) -> List[str]:
        state = self.load_or_create()
        return list(state.get(repo_path, {}).keys())
