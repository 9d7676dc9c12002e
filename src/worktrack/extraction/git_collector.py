"""Point-in-time git observations for one repository."""

from pathlib import Path
from typing import Dict, List, Optional

import git
import structlog
from git import Repo

from worktrack.models import STATUS_ERROR_SENTINEL, BranchSnapshot, DiffStat

logger = structlog.get_logger(__name__)

DEFAULT_BASE_BRANCHES = ("master", "main")


def parse_numstat(output: str, stats: Optional[Dict[str, DiffStat]] = None) -> Dict[str, DiffStat]:
    """Parse `git diff --numstat -z` output into per-file stats.

    Renames are recorded under their destination path. Stats for a path that
    is already present are added to, not replaced.

    Args:
        output: Raw NUL-separated numstat output
        stats: Existing mapping to merge into (optional)

    Returns:
        Mapping of file path to DiffStat
    """
    if stats is None:
        stats = {}

    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        record = tokens[i].strip("\n")
        i += 1
        if not record:
            continue

        parts = record.split("\t")
        if len(parts) != 3:
            continue
        added, deleted, file_path = parts

        if not file_path:
            # Rename/copy: the source and destination paths follow as two tokens
            if i + 1 >= len(tokens):
                break
            file_path = tokens[i + 1]
            i += 2

        # Binary files report "-" for both counts
        added_num = 0 if added == "-" else int(added)
        deleted_num = 0 if deleted == "-" else int(deleted)

        existing = stats.get(file_path)
        if existing is None:
            stats[file_path] = DiffStat(added=added_num, deleted=deleted_num)
        else:
            existing.added += added_num
            existing.deleted += deleted_num

    return stats


def count_lines(file_path: Path) -> int:
    """Count lines in a text file; unreadable or binary files count 0."""
    try:
        return len(file_path.read_text(encoding="utf-8").splitlines())
    except (OSError, UnicodeDecodeError):
        return 0


class GitSnapshotCollector:
    """Runs a fixed battery of git queries against one working tree.

    Every query is independently fallible: a failing git invocation turns into
    None (or the status sentinel) for that field only.
    """

    def __init__(self, repo_path: Path) -> None:
        """Initialize the collector.

        Args:
            repo_path: Path to the git working tree

        Raises:
            ValueError: If repository path is invalid
        """
        self.repo_path = Path(repo_path)
        if not self.repo_path.exists():
            raise ValueError(f"Repository path does not exist: {self.repo_path}")

        try:
            self.repo = Repo(self.repo_path)
        except git.exc.InvalidGitRepositoryError as e:
            raise ValueError(f"Invalid Git repository: {self.repo_path}") from e

        if self.repo.bare:
            raise ValueError(f"Repository has no working tree: {self.repo_path}")

    def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None when detached or unreadable."""
        try:
            branch = self.repo.git.rev_parse("--abbrev-ref", "HEAD").strip()
        except git.GitCommandError as e:
            logger.warning("current_branch_failed", repo=str(self.repo_path), error=str(e))
            return None

        if not branch or branch == "HEAD":
            return None
        return branch

    def branch_exists(self, ref: str) -> bool:
        try:
            self.repo.git.rev_parse("--verify", "--quiet", ref)
            return True
        except git.GitCommandError:
            return False

    def list_branches(self) -> List[str]:
        """Local branch names, sorted."""
        try:
            output = self.repo.git.for_each_ref("--format=%(refname:short)", "refs/heads")
        except git.GitCommandError as e:
            logger.warning("list_branches_failed", repo=str(self.repo_path), error=str(e))
            return []
        return sorted(line.strip() for line in output.splitlines() if line.strip())

    def resolve_base_branch(self, configured: Optional[str] = None) -> str:
        """Pick the branch that feature work is measured against.

        Args:
            configured: Configured main branch (optional)

        Returns:
            The configured branch if it exists, else master, else main. When
            none exist, "master" is returned and base-dependent queries
            resolve to None.
        """
        if configured:
            if self.branch_exists(configured):
                return configured
            logger.warning(
                "configured_main_branch_missing",
                repo=str(self.repo_path),
                branch=configured,
            )

        for candidate in DEFAULT_BASE_BRANCHES:
            if self.branch_exists(candidate):
                return candidate
        return DEFAULT_BASE_BRANCHES[0]

    def working_tree_status(self) -> str:
        """Porcelain status text, or the error sentinel if git status fails."""
        try:
            return self.repo.git.status("--porcelain")
        except git.GitCommandError as e:
            logger.error("git_status_failed", repo=str(self.repo_path), error=str(e))
            return STATUS_ERROR_SENTINEL

    def commit_hash(self, ref: str) -> Optional[str]:
        if not self.branch_exists(ref):
            return None
        try:
            return self.repo.git.rev_parse(ref).strip()
        except git.GitCommandError as e:
            logger.error("commit_hash_failed", repo=str(self.repo_path), ref=ref, error=str(e))
            return None

    def files_changed_vs_base(self, base: str, branch: str) -> Optional[List[str]]:
        """Files differing between the merge base of base/branch and branch."""
        if not self._both_exist(base, branch):
            return None
        try:
            output = self.repo.git.diff("--name-only", f"{base}...{branch}")
        except git.GitCommandError as e:
            logger.error(
                "diff_files_failed", repo=str(self.repo_path), base=base, branch=branch, error=str(e)
            )
            return None
        return [line for line in output.splitlines() if line]

    def commits_ahead_of_base(self, base: str, branch: str) -> Optional[List[str]]:
        """Commit SHAs reachable from branch but not from base, newest first."""
        if not self._both_exist(base, branch):
            return None
        try:
            output = self.repo.git.log("--pretty=%H", f"{base}..{branch}")
        except git.GitCommandError as e:
            logger.error(
                "commits_ahead_failed", repo=str(self.repo_path), base=base, branch=branch, error=str(e)
            )
            return None
        return [line.strip() for line in output.splitlines() if line.strip()]

    def committed_diff_stats(self, base: str, branch: str) -> Optional[Dict[str, DiffStat]]:
        if not self._both_exist(base, branch):
            return None
        try:
            output = self.repo.git.diff("--numstat", "-z", "-M", f"{base}...{branch}")
        except git.GitCommandError as e:
            logger.error(
                "committed_diff_stats_failed",
                repo=str(self.repo_path),
                base=base,
                branch=branch,
                error=str(e),
            )
            return None
        return parse_numstat(output)

    def working_tree_diff_stats(self) -> Optional[Dict[str, DiffStat]]:
        """Stats for everything not yet committed.

        Merges the working tree diff, the staged diff and untracked files
        (whose full line count is counted as added).
        """
        try:
            unstaged = self.repo.git.diff("--numstat", "-z", "-M")
            staged = self.repo.git.diff("--cached", "--numstat", "-z", "-M")
            untracked = self.repo.git.ls_files("--others", "--exclude-standard", "-z")
        except git.GitCommandError as e:
            logger.error("working_tree_diff_stats_failed", repo=str(self.repo_path), error=str(e))
            return None

        stats = parse_numstat(unstaged)
        parse_numstat(staged, stats)

        working_dir = Path(self.repo.working_tree_dir)
        for file_path in untracked.split("\0"):
            if not file_path:
                continue
            stats[file_path] = DiffStat(added=count_lines(working_dir / file_path), deleted=0)

        return stats

    def collect(self, branch: str, base_branch: str) -> BranchSnapshot:
        """Run every query and bundle the results.

        Args:
            branch: Branch being worked on
            base_branch: Branch it is compared against

        Returns:
            BranchSnapshot for this moment
        """
        return BranchSnapshot(
            working_tree_status=self.working_tree_status(),
            head_commit_hash=self.commit_hash(branch),
            base_commit_hash=self.commit_hash(base_branch),
            files_changed_vs_base=self.files_changed_vs_base(base_branch, branch),
            commits_ahead_of_base=self.commits_ahead_of_base(base_branch, branch),
            committed_diff_stats=self.committed_diff_stats(base_branch, branch),
            working_tree_diff_stats=self.working_tree_diff_stats(),
        )

    def _both_exist(self, base: str, branch: str) -> bool:
        return self.branch_exists(base) and self.branch_exists(branch)
