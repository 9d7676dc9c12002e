"""Unit tests for repository discovery and validation."""

from pathlib import Path

import pytest

from worktrack.exceptions import ConfigError
from worktrack.extraction import discover_repositories, resolve_repositories, validate_repository
from worktrack.models import RepositoryConfig, TrackerConfig


@pytest.fixture
def workspace(tmp_path, make_repo):
    """A folder with three repositories and one plain directory."""
    root = tmp_path / "work"
    make_repo(root / "api", main_branch="main")
    make_repo(root / "legacy", main_branch="master")
    odd = make_repo(root / "odd", main_branch="trunk")
    odd.git.branch("zzz")
    (root / "docs").mkdir()
    (root / "notes.txt").write_text("not a repo")
    return root


def test_discover_repositories(workspace):
    repositories = discover_repositories(workspace)

    assert [(r.path.name, r.main_branch) for r in repositories] == [
        ("api", "main"),
        ("legacy", "master"),
        ("odd", "trunk"),
    ]


def test_discover_prefers_common_main_branch(tmp_path, make_repo):
    repo = make_repo(tmp_path / "work" / "svc", main_branch="feature-x")
    repo.git.branch("develop")

    [discovered] = discover_repositories(tmp_path / "work")

    assert discovered.main_branch == "develop"


def test_discover_missing_folder(tmp_path):
    with pytest.raises(ConfigError, match="Directory does not exist"):
        discover_repositories(tmp_path / "missing")


def test_validate_repository(tmp_path, make_repo):
    make_repo(tmp_path / "repo")
    validate_repository(RepositoryConfig(path=tmp_path / "repo"))

    with pytest.raises(ConfigError, match="does not exist"):
        validate_repository(RepositoryConfig(path=tmp_path / "missing"))

    (tmp_path / "plain").mkdir()
    with pytest.raises(ConfigError, match="Not a Git repository"):
        validate_repository(RepositoryConfig(path=tmp_path / "plain"))


def test_resolve_merges_explicit_and_discovered(workspace):
    config = TrackerConfig(
        repositories=[
            RepositoryConfig(path=workspace / "api", main_branch="release", name="api"),
            RepositoryConfig(path=Path("/nonexistent/repo")),
        ],
        repositories_folder=workspace,
    )

    resolved = resolve_repositories(config)

    assert [r.path.name for r in resolved.repositories] == ["api", "legacy", "odd"]
    # Explicit entry wins over the discovered one
    assert resolved.repositories[0].main_branch == "release"
    assert resolved.repositories[0].name == "api"
    assert len(resolved.errors) == 1
    assert "/nonexistent/repo" in resolved.errors[0]


def test_resolve_reports_missing_folder(tmp_path, make_repo):
    make_repo(tmp_path / "repo")
    config = TrackerConfig(
        repositories=[RepositoryConfig(path=tmp_path / "repo")],
        repositories_folder=tmp_path / "missing",
    )

    resolved = resolve_repositories(config)

    assert [r.path for r in resolved.repositories] == [tmp_path / "repo"]
    assert any("Directory does not exist" in error for error in resolved.errors)
