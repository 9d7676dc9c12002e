"""Repository discovery and validation."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import structlog

from worktrack.exceptions import ConfigError
from worktrack.extraction.git_collector import GitSnapshotCollector
from worktrack.models import RepositoryConfig, TrackerConfig

logger = structlog.get_logger(__name__)

COMMON_MAIN_BRANCHES = ("main", "master", "develop", "development", "dev")


@dataclass
class ResolvedRepositories:
    """Repositories that can be tracked, plus the entries that were rejected."""

    repositories: List[RepositoryConfig] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def discover_repositories(parent_path: Path) -> List[RepositoryConfig]:
    """Find git repositories directly under a folder.

    The main branch of each repository is the first common main branch name
    that exists locally, else its first branch. Repositories without any
    branch are skipped.

    Args:
        parent_path: Folder to scan

    Returns:
        List of RepositoryConfig objects, sorted by path

    Raises:
        ConfigError: If the folder does not exist or cannot be read
    """
    parent_path = Path(parent_path).expanduser()
    if not parent_path.is_dir():
        raise ConfigError(f"Directory does not exist: {parent_path}")

    try:
        entries = sorted(parent_path.iterdir())
    except OSError as e:
        raise ConfigError(f"Error reading directory {parent_path}: {e}") from e

    repositories = []
    for entry in entries:
        try:
            if not entry.is_dir() or not (entry / ".git").exists():
                continue

            branches = GitSnapshotCollector(entry).list_branches()
        except (OSError, ValueError) as e:
            logger.warning("discovery_skipped", path=str(entry), error=str(e))
            continue

        lowered = {branch.lower(): branch for branch in branches}
        main_branch = next(
            (lowered[name] for name in COMMON_MAIN_BRANCHES if name in lowered),
            branches[0] if branches else None,
        )
        if main_branch is None:
            logger.warning("discovery_no_branches", path=str(entry))
            continue

        repositories.append(RepositoryConfig(path=entry, main_branch=main_branch))

    return repositories


def validate_repository(repository: RepositoryConfig) -> None:
    """Check that a configured path is a git working tree.

    Raises:
        ConfigError: If the path is missing or not a git repository
    """
    if not repository.path.exists():
        raise ConfigError(f"Repository path does not exist: {repository.path}")
    if not (repository.path / ".git").exists():
        raise ConfigError(f"Not a Git repository: {repository.path}")


def resolve_repositories(config: TrackerConfig) -> ResolvedRepositories:
    """Build the list of repositories to track from the configuration.

    Discovered repositories from ``repositories_folder`` are added to the
    explicitly configured ones (explicit entries win on duplicate paths).
    Invalid entries are reported and left out; they never prevent the valid
    ones from being tracked.

    Args:
        config: Tracker configuration

    Returns:
        ResolvedRepositories with the valid entries and one message per
        rejected entry
    """
    resolved = ResolvedRepositories()
    candidates = list(config.repositories)

    if config.repositories_folder is not None:
        try:
            discovered = discover_repositories(config.repositories_folder)
        except ConfigError as e:
            resolved.errors.append(str(e))
            logger.error("discovery_failed", folder=str(config.repositories_folder), error=str(e))
        else:
            known = {repo.path.resolve() for repo in candidates}
            candidates.extend(repo for repo in discovered if repo.path.resolve() not in known)

    for repository in candidates:
        try:
            validate_repository(repository)
        except ConfigError as e:
            resolved.errors.append(str(e))
            logger.error("repository_invalid", path=str(repository.path), error=str(e))
            continue
        resolved.repositories.append(repository)

    return resolved
