"""Data models for the activity log."""

import datetime

from pydantic import BaseModel, Field


class LogEntry(BaseModel):
    """Hours attributed to one task in one repository on one day."""

    date: datetime.date = Field(..., description="Local calendar day")
    task_id: str = Field(..., description="Task id, or the raw branch name when none matched")
    repository: str = Field(..., description="Repository identifier")
    hours: float = Field(0.0, description="Accumulated hours")

    @property
    def key(self) -> tuple:
        return (self.date, self.task_id, self.repository)
