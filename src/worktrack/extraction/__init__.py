"""Git data extraction for activity tracking."""

from worktrack.extraction.discovery import (
    ResolvedRepositories,
    discover_repositories,
    resolve_repositories,
    validate_repository,
)
from worktrack.extraction.git_collector import GitSnapshotCollector, parse_numstat

__all__ = [
    "GitSnapshotCollector",
    "parse_numstat",
    "ResolvedRepositories",
    "discover_repositories",
    "resolve_repositories",
    "validate_repository",
]
