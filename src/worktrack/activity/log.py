"""Activity log: accumulated hours per (date, task, repository)."""

import csv
import datetime
import io
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from worktrack.models import LogEntry

logger = structlog.get_logger(__name__)

LOG_HEADER = ["date", "taskId", "repository", "hours"]
LEGACY_LOG_HEADER = ["date", "taskId", "hours"]

# Decimal places kept when hours are added, to stop floating-point creep.
HOURS_PRECISION = 4


class LogEntryAccumulator:
    """In-memory collection of log entries, merged on (date, task, repository)."""

    def __init__(self, entries: Optional[Iterable[LogEntry]] = None):
        self.entries: List[LogEntry] = []
        self._index: Dict[Tuple[datetime.date, str, str], LogEntry] = {}
        self.dirty = False

        for entry in entries or []:
            existing = self._index.get(entry.key)
            if existing is None:
                self.entries.append(entry)
                self._index[entry.key] = entry
            else:
                existing.hours = round(existing.hours + entry.hours, HOURS_PRECISION)

    def accumulate(
        self, date: datetime.date, task_id: str, repository: str, hours: float
    ) -> LogEntry:
        """Add hours to the row for this key, creating it if needed.

        Args:
            date: Local calendar day
            task_id: Task id
            repository: Repository identifier
            hours: Hours to add

        Returns:
            The updated or created LogEntry
        """
        key = (date, task_id, repository)
        entry = self._index.get(key)
        if entry is None:
            entry = LogEntry(
                date=date,
                task_id=task_id,
                repository=repository,
                hours=round(hours, HOURS_PRECISION),
            )
            self.entries.append(entry)
            self._index[key] = entry
        else:
            entry.hours = round(entry.hours + hours, HOURS_PRECISION)

        self.dirty = True
        return entry

    def get(self, date: datetime.date, task_id: str, repository: str) -> Optional[LogEntry]:
        return self._index.get((date, task_id, repository))

    def __len__(self) -> int:
        return len(self.entries)


class ActivityLog:
    """CSV-backed activity log.

    Reads both the current ``date,taskId,repository,hours`` layout and the
    older ``date,taskId,hours`` one (repository left empty). Always writes the
    four-column layout, as a whole-file atomic rewrite.
    """

    def __init__(self, log_file: Path):
        self.log_file = Path(log_file)

    def read_entries(self) -> List[LogEntry]:
        """Parse the log file.

        Returns:
            Entries in file order; empty if the file does not exist. Rows
            that cannot be parsed are skipped with a warning.
        """
        if not self.log_file.exists():
            return []

        # Undecodable bytes become U+FFFD so one bad row cannot hide the rest
        with open(self.log_file, "r", encoding="utf-8", errors="replace", newline="") as f:
            lines = f.read().splitlines()

        if not lines:
            return []

        header = [column.strip() for column in next(csv.reader([lines[0]]), [])]
        has_repository = "repository" in header
        if header not in (LOG_HEADER, LEGACY_LOG_HEADER):
            logger.warning("activity_log_unknown_header", path=str(self.log_file), header=header)

        entries = []
        for line_number, line in enumerate(lines[1:], start=2):
            try:
                row = next(csv.reader([line]), [])
            except csv.Error as e:
                logger.warning(
                    "activity_log_row_skipped",
                    path=str(self.log_file),
                    line=line_number,
                    error=str(e),
                )
                continue
            if not row or not any(cell.strip() for cell in row):
                continue
            if "\ufffd" in line:
                logger.warning(
                    "activity_log_row_skipped",
                    path=str(self.log_file),
                    line=line_number,
                    error="invalid UTF-8",
                )
                continue
            try:
                if has_repository:
                    date_str, task_id, repository, hours_str = row
                else:
                    date_str, task_id, hours_str = row
                    repository = ""
                entries.append(
                    LogEntry(
                        date=datetime.date.fromisoformat(date_str.strip()),
                        task_id=task_id,
                        repository=repository,
                        hours=float(hours_str),
                    )
                )
            except ValueError as e:
                logger.warning(
                    "activity_log_row_skipped",
                    path=str(self.log_file),
                    line=line_number,
                    error=str(e),
                )

        return entries

    def load(self) -> LogEntryAccumulator:
        return LogEntryAccumulator(self.read_entries())

    def save(self, entries: Iterable[LogEntry]) -> None:
        """Rewrite the whole log file atomically.

        Raises:
            OSError: If the file cannot be written
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(LOG_HEADER)
        for entry in entries:
            writer.writerow([entry.date.isoformat(), entry.task_id, entry.repository, entry.hours])

        log_dir = self.log_file.parent
        log_dir.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(dir=log_dir, prefix=".activity_", suffix=".csv.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(buffer.getvalue())

            os.replace(temp_path, self.log_file)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
