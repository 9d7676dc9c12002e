"""Unit tests for the git snapshot collector."""

from pathlib import Path
from types import SimpleNamespace

import git
import pytest

from worktrack.extraction import GitSnapshotCollector, parse_numstat
from worktrack.models import STATUS_ERROR_SENTINEL, DiffStat


class FailingGit:
    """Wraps a repo's git command object, failing the named commands."""

    def __init__(self, real, failing):
        self._real = real
        self._failing = set(failing)

    def __getattr__(self, name):
        if name in self._failing:
            def fail(*args, **kwargs):
                raise git.GitCommandError(name, 128)
            return fail
        return getattr(self._real, name)


def break_commands(collector, *commands):
    real_repo = collector.repo
    collector.repo = SimpleNamespace(
        git=FailingGit(real_repo.git, commands),
        working_tree_dir=real_repo.working_tree_dir,
    )


class TestParseNumstat:
    def test_plain_entries(self):
        stats = parse_numstat("3\t1\tsrc/app.py\x005\t0\tREADME.md\x00")
        assert stats == {
            "src/app.py": DiffStat(added=3, deleted=1),
            "README.md": DiffStat(added=5, deleted=0),
        }

    def test_binary_counts_zero(self):
        stats = parse_numstat("-\t-\tlogo.png\x00")
        assert stats == {"logo.png": DiffStat(added=0, deleted=0)}

    def test_rename_lands_on_destination(self):
        stats = parse_numstat("2\t1\t\x00old/name.py\x00new/name.py\x00")
        assert stats == {"new/name.py": DiffStat(added=2, deleted=1)}

    def test_merges_into_existing_stats(self):
        stats = parse_numstat("1\t0\tapp.py\x00")
        parse_numstat("2\t3\tapp.py\x00", stats)
        assert stats["app.py"] == DiffStat(added=3, deleted=3)

    def test_empty_output(self):
        assert parse_numstat("") == {}


def test_collector_invalid_path():
    with pytest.raises(ValueError, match="Repository path does not exist"):
        GitSnapshotCollector(Path("/nonexistent/path"))


def test_collector_not_a_repository(tmp_path):
    with pytest.raises(ValueError, match="Invalid Git repository"):
        GitSnapshotCollector(tmp_path)


def test_current_branch(git_repo):
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.current_branch() == "DFO-42-fix"


def test_current_branch_detached_head(git_repo):
    git_repo.git.checkout("--detach")
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.current_branch() is None


def test_branch_exists(git_repo):
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.branch_exists("main")
    assert not collector.branch_exists("does-not-exist")


def test_list_branches(git_repo):
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.list_branches() == ["DFO-42-fix", "main"]


def test_resolve_base_branch_uses_configured(git_repo):
    git_repo.git.branch("develop")
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.resolve_base_branch("develop") == "develop"


def test_resolve_base_branch_falls_back_when_missing(git_repo):
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.resolve_base_branch("release") == "main"


def test_resolve_base_branch_prefers_master(git_repo):
    git_repo.git.branch("master")
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    assert collector.resolve_base_branch(None) == "master"


def test_collect_clean_feature_branch(git_repo):
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    snapshot = collector.collect("DFO-42-fix", "main")

    head = git_repo.head.commit.hexsha
    assert snapshot.working_tree_status == ""
    assert snapshot.head_commit_hash == head
    assert snapshot.base_commit_hash == head
    assert snapshot.files_changed_vs_base == []
    assert snapshot.commits_ahead_of_base == []
    assert snapshot.commits_ahead_count == 0
    assert snapshot.committed_diff_stats == {}
    assert snapshot.working_tree_diff_stats == {}


def test_collect_with_commits_ahead(git_repo, add_commit):
    first = add_commit(git_repo, "main.py", "a\nb\n", "Add main.py")
    second = add_commit(git_repo, "util.py", "x\n", "Add util.py")

    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    snapshot = collector.collect("DFO-42-fix", "main")

    assert snapshot.head_commit_hash == second
    assert snapshot.commits_ahead_of_base == [second, first]
    assert snapshot.commits_ahead_count == 2
    assert sorted(snapshot.files_changed_vs_base) == ["main.py", "util.py"]
    assert snapshot.committed_diff_stats == {
        "main.py": DiffStat(added=2, deleted=0),
        "util.py": DiffStat(added=1, deleted=0),
    }


def test_working_tree_stats_merge_sources(git_repo, add_commit):
    add_commit(git_repo, "tracked.py", "one\ntwo\nthree\n", "Add tracked.py")
    work_dir = Path(git_repo.working_tree_dir)

    # Unstaged edit
    (work_dir / "tracked.py").write_text("one\ntwo\nthree\nfour\n")
    # Staged new file
    (work_dir / "staged.py").write_text("s1\ns2\n")
    git_repo.git.add("staged.py")
    # Untracked file
    (work_dir / "notes.txt").write_text("n1\nn2\nn3\n")

    stats = GitSnapshotCollector(work_dir).working_tree_diff_stats()

    assert stats == {
        "tracked.py": DiffStat(added=1, deleted=0),
        "staged.py": DiffStat(added=2, deleted=0),
        "notes.txt": DiffStat(added=3, deleted=0),
    }


def test_staged_rename_then_modified_accumulates(git_repo, add_commit):
    add_commit(git_repo, "old.py", "one\ntwo\nthree\nfour\nfive\n", "Add old.py")
    work_dir = Path(git_repo.working_tree_dir)

    git_repo.git.mv("old.py", "new.py")
    (work_dir / "new.py").write_text("one\ntwo\nthree\nfour\nfive\nsix\n")

    stats = GitSnapshotCollector(work_dir).working_tree_diff_stats()

    assert "old.py" not in stats
    assert stats["new.py"] == DiffStat(added=1, deleted=0)


def test_missing_base_branch_gives_none(make_repo, tmp_path):
    repo = make_repo(tmp_path / "trunk-repo", main_branch="trunk")
    repo.git.checkout("-b", "feature")
    collector = GitSnapshotCollector(Path(repo.working_tree_dir))

    base = collector.resolve_base_branch(None)
    snapshot = collector.collect("feature", base)

    assert base == "master"
    assert snapshot.head_commit_hash == repo.head.commit.hexsha
    assert snapshot.base_commit_hash is None
    assert snapshot.files_changed_vs_base is None
    assert snapshot.commits_ahead_of_base is None
    assert snapshot.commits_ahead_count == 0
    assert snapshot.committed_diff_stats is None
    assert snapshot.working_tree_diff_stats == {}


def test_status_failure_stores_sentinel(git_repo):
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    break_commands(collector, "status")

    snapshot = collector.collect("DFO-42-fix", "main")

    assert snapshot.working_tree_status == STATUS_ERROR_SENTINEL
    assert snapshot.status_failed
    # The other queries still ran
    assert snapshot.head_commit_hash == git_repo.head.commit.hexsha
    assert snapshot.commits_ahead_of_base == []


def test_diff_stat_failure_does_not_block_other_fields(git_repo, add_commit):
    sha = add_commit(git_repo, "main.py", "a\n", "Add main.py")
    collector = GitSnapshotCollector(Path(git_repo.working_tree_dir))
    break_commands(collector, "ls_files")

    snapshot = collector.collect("DFO-42-fix", "main")

    assert snapshot.working_tree_diff_stats is None
    assert snapshot.head_commit_hash == sha
    assert snapshot.committed_diff_stats == {"main.py": DiffStat(added=1, deleted=0)}
    assert snapshot.working_tree_status == ""
