"""Time attribution engine - orchestrates one tracking tick."""

import asyncio
import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import structlog

from worktrack.activity.log import ActivityLog, LogEntryAccumulator
from worktrack.extraction.git_collector import GitSnapshotCollector
from worktrack.models import BranchSnapshot, RepositoryConfig, TrackerConfig
from worktrack.tracking.delta import ChangeDetector
from worktrack.tracking.state import RepositoryStateStore
from worktrack.tracking.task_id import extract_task_id

logger = structlog.get_logger(__name__)

# Tolerance for scheduler jitter: a tick firing slightly early still passes
# the interval gate. Must stay under 10 s so a change 4m50s after the last log
# is still gated for a 5-minute interval.
LOG_INTERVAL_LEEWAY_MS = 5_000

DEFAULT_TICK_TIMEOUT_SECONDS = 120.0


class SnapshotSource(Protocol):
    """What the engine needs from a git collector."""

    def current_branch(self) -> Optional[str]: ...

    def resolve_base_branch(self, configured: Optional[str] = None) -> str: ...

    def collect(self, branch: str, base_branch: str) -> BranchSnapshot: ...


@dataclass
class RepositoryObservation:
    """Result of looking at one repository, before any shared state is touched."""

    repository: RepositoryConfig
    branch: Optional[str] = None
    base_branch: Optional[str] = None
    snapshot: Optional[BranchSnapshot] = None
    error: Optional[str] = None


@dataclass
class AttributionDecision:
    """What the engine decided for one (repository, branch) this tick."""

    repo_path: str
    branch: str
    first_sight: bool
    changed_dimensions: Tuple[str, ...]
    interval_elapsed: bool
    should_log: bool
    state_written: bool
    task_id: Optional[str] = None
    hours: float = 0.0

    @property
    def changed(self) -> bool:
        return bool(self.changed_dimensions)


@dataclass
class TickResult:
    """Summary of one tick."""

    decisions: List[AttributionDecision] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    persistence_errors: List[str] = field(default_factory=list)
    state_saved: bool = False
    log_saved: bool = False
    timed_out: bool = False

    @property
    def logged(self) -> bool:
        return any(decision.should_log for decision in self.decisions)


def is_interval_elapsed(now_ms: int, last_log_timestamp: int, interval_ms: int) -> bool:
    """Whether enough time has passed since the last logging event."""
    return now_ms - last_log_timestamp >= interval_ms - LOG_INTERVAL_LEEWAY_MS


class TimeAttributionEngine:
    """Attributes tracking intervals to tasks based on repository activity.

    Each tick fans out one observation per repository (git queries run in
    worker threads, with bounded concurrency). Observations never touch the
    state store or the activity log; a single serial reducer applies them
    once the fan-out has completed.
    """

    def __init__(
        self,
        config: TrackerConfig,
        state_store: RepositoryStateStore,
        activity_log: ActivityLog,
        repositories: Optional[List[RepositoryConfig]] = None,
        detector: Optional[ChangeDetector] = None,
        collector_factory: Callable[[Path], SnapshotSource] = GitSnapshotCollector,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
        max_concurrency: int = 4,
        tick_timeout: float = DEFAULT_TICK_TIMEOUT_SECONDS,
    ):
        """Initialize the engine.

        Args:
            config: Tracker configuration
            state_store: Persistent branch state
            activity_log: Persistent activity log
            repositories: Repositories to check (defaults to config.repositories)
            detector: Change detector (optional)
            collector_factory: Builds a snapshot source for a repository path
            clock: Returns the current local time
            max_concurrency: Maximum repositories inspected at once
            tick_timeout: Seconds allowed for the fan-out before the tick is abandoned
        """
        self.config = config
        self.state_store = state_store
        self.activity_log = activity_log
        self.repositories = list(config.repositories if repositories is None else repositories)
        self.detector = detector or ChangeDetector()
        self.collector_factory = collector_factory
        self.clock = clock
        self.max_concurrency = max_concurrency
        self.tick_timeout = tick_timeout

    def observe(self, repository: RepositoryConfig) -> RepositoryObservation:
        """Collect a snapshot of the checked-out branch of one repository.

        Runs synchronously; git commands block.
        """
        collector = self.collector_factory(repository.path)

        branch = collector.current_branch()
        if branch is None:
            return RepositoryObservation(
                repository=repository,
                error="Could not determine current branch",
            )

        base_branch = collector.resolve_base_branch(repository.main_branch)
        snapshot = collector.collect(branch, base_branch)
        return RepositoryObservation(
            repository=repository,
            branch=branch,
            base_branch=base_branch,
            snapshot=snapshot,
        )

    async def observe_repository(
        self, repository: RepositoryConfig, semaphore: asyncio.Semaphore
    ) -> RepositoryObservation:
        """Observe one repository in a worker thread; failures become an error value."""
        async with semaphore:
            try:
                return await asyncio.to_thread(self.observe, repository)
            except Exception as e:
                logger.error("repository_check_failed", repo=str(repository.path), error=str(e))
                return RepositoryObservation(repository=repository, error=str(e))

    async def observe_all(self) -> List[RepositoryObservation]:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        return await asyncio.gather(
            *(self.observe_repository(repository, semaphore) for repository in self.repositories)
        )

    def apply_observation(
        self,
        observation: RepositoryObservation,
        accumulator: LogEntryAccumulator,
        now: datetime.datetime,
    ) -> AttributionDecision:
        """Run change detection and the interval gate, then record the outcome.

        This is the only place the state store and accumulator are mutated,
        and it must be called serially.
        """
        repo_path = str(observation.repository.path)
        branch = observation.branch
        snapshot = observation.snapshot

        previous = self.state_store.get_branch_state(repo_path, branch)
        report = self.detector.compare(previous, snapshot)

        now_ms = int(now.timestamp() * 1000)
        last_log_timestamp = previous.last_log_timestamp if previous else 0
        interval_elapsed = is_interval_elapsed(
            now_ms, last_log_timestamp, self.config.tracking_interval_ms
        )
        should_log = report.changed and interval_elapsed and not report.first_sight

        decision = AttributionDecision(
            repo_path=repo_path,
            branch=branch,
            first_sight=report.first_sight,
            changed_dimensions=report.changed_dimensions,
            interval_elapsed=interval_elapsed,
            should_log=should_log,
            state_written=report.changed or report.first_sight,
        )

        if decision.state_written:
            self.state_store.update_branch_state(
                repo_path,
                branch,
                snapshot,
                last_log_timestamp=now_ms if should_log else last_log_timestamp,
            )

        if should_log:
            task_id = extract_task_id(branch, self.config.task_id_regex) or branch
            entry = accumulator.accumulate(
                now.date(),
                task_id,
                observation.repository.identifier,
                self.config.interval_hours,
            )
            decision.task_id = task_id
            decision.hours = self.config.interval_hours
            logger.info(
                "time_logged",
                task_id=task_id,
                repo=repo_path,
                branch=branch,
                hours=round(self.config.interval_hours, 2),
                total_today=entry.hours,
            )
        elif report.first_sight:
            logger.info("initial_state_captured", repo=repo_path, branch=branch)
        elif report.changed:
            logger.info(
                "interval_not_elapsed",
                repo=repo_path,
                branch=branch,
                interval_minutes=self.config.tracking_interval_minutes,
            )
        else:
            logger.debug("no_changes", repo=repo_path, branch=branch)

        return decision

    async def run_tick(self) -> TickResult:
        """Check every repository once and persist what changed.

        Returns:
            TickResult describing decisions, failures and what was written
        """
        result = TickResult()
        logger.info("tick_started", repositories=len(self.repositories))

        try:
            observations = await asyncio.wait_for(self.observe_all(), timeout=self.tick_timeout)
        except asyncio.TimeoutError:
            logger.error("tick_timed_out", timeout_seconds=self.tick_timeout)
            result.timed_out = True
            return result

        self.state_store.load()
        try:
            accumulator = self.activity_log.load()
        except (OSError, ValueError) as e:
            logger.error("activity_log_unreadable", path=str(self.activity_log.log_file), error=str(e))
            result.persistence_errors.append(str(e))
            return result

        now = self.clock()
        for observation in observations:
            if observation.error is not None:
                result.errors[str(observation.repository.path)] = observation.error
                logger.warning(
                    "repository_skipped",
                    repo=str(observation.repository.path),
                    reason=observation.error,
                )
                continue
            result.decisions.append(self.apply_observation(observation, accumulator, now))

        if any(decision.state_written for decision in result.decisions):
            try:
                self.state_store.save()
                result.state_saved = True
            except OSError as e:
                logger.error("state_write_failed", path=str(self.state_store.state_file), error=str(e))
                result.persistence_errors.append(str(e))
                # The stored snapshots still predate this tick's entries; the
                # next tick detects the same changes and logs them then.
                if accumulator.dirty:
                    logger.warning("activity_log_write_skipped", path=str(self.activity_log.log_file))
                return result

        if accumulator.dirty:
            try:
                self.activity_log.save(accumulator.entries)
                result.log_saved = True
                logger.info("activity_log_updated", path=str(self.activity_log.log_file))
            except OSError as e:
                logger.error("activity_log_write_failed", path=str(self.activity_log.log_file), error=str(e))
                result.persistence_errors.append(str(e))

        return result
