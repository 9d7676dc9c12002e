"""Shared fixtures."""

import datetime
from pathlib import Path

import git
import pytest


def init_repo(repo_path: Path, main_branch: str = "main") -> git.Repo:
    """Create a repository with one commit on main_branch."""
    repo_path.mkdir(parents=True, exist_ok=True)
    repo = git.Repo.init(repo_path)

    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    (repo_path / "README.md").write_text("# Test Project\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")
    repo.git.branch("-M", main_branch)
    return repo


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> str:
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message).hexsha


@pytest.fixture
def make_repo():
    """Factory for repositories: make_repo(path, main_branch="main")."""
    return init_repo


@pytest.fixture
def add_commit():
    """Factory for commits: add_commit(repo, name, content, message)."""
    return commit_file


@pytest.fixture
def git_repo(tmp_path):
    """A repository on main with a DFO-42-fix feature branch checked out."""
    repo = init_repo(tmp_path / "repo")
    repo.git.checkout("-b", "DFO-42-fix")
    return repo


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime.datetime):
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> datetime.datetime:
        self.now += datetime.timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime.datetime(2026, 10, 19, 9, 0, 0))
