"""Configuration models."""

import json
import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from worktrack.exceptions import ConfigError

DEFAULT_TASK_ID_PATTERN = r"DFO-\d+"


class RepositoryConfig(BaseModel):
    """A git working tree to watch."""

    model_config = ConfigDict(populate_by_name=True)

    path: Path = Field(..., description="Path to the git working tree")
    main_branch: Optional[str] = Field(
        None,
        alias="mainBranch",
        description="Base branch to compare against (falls back to master, then main)",
    )
    name: Optional[str] = Field(
        None, description="Identifier written to the activity log (defaults to the path)"
    )

    @field_validator("path")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def identifier(self) -> str:
        return self.name or str(self.path)


class TrackerConfig(BaseModel):
    """User configuration for the activity tracker.

    Keys are accepted in the camelCase form used by the config file
    (``trackingIntervalMinutes``) as well as in snake_case.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "repositories": [{"path": "/home/me/work/api", "mainBranch": "main"}],
                "trackingIntervalMinutes": 5,
                "taskIdRegEx": "DFO-\\d+",
            }
        },
    )

    repositories: List[RepositoryConfig] = Field(
        default_factory=list, description="Repositories to track"
    )
    repositories_folder: Optional[Path] = Field(
        None,
        alias="repositoriesFolder",
        description="Folder whose child git repositories are tracked automatically",
    )
    tracking_interval_minutes: float = Field(
        5,
        gt=0,
        alias="trackingIntervalMinutes",
        description="Poll cadence and minimum time between log entries per branch",
    )
    task_id_regex: str = Field(
        DEFAULT_TASK_ID_PATTERN,
        alias="taskIdRegEx",
        description="Pattern used to extract task ids from branch names",
    )
    task_tracking_url: Optional[str] = Field(
        None, alias="taskTrackingUrl", description="Base URL for task links in summaries"
    )

    @field_validator("task_id_regex")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid task id pattern {value!r}: {e}") from e
        return value

    @field_validator("repositories_folder")
    @classmethod
    def _expand_user_folder(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    @field_validator("task_tracking_url")
    @classmethod
    def _blank_url_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @model_validator(mode="after")
    def _has_repository_source(self) -> "TrackerConfig":
        if not self.repositories and self.repositories_folder is None:
            raise ValueError("Either repositories or repositoriesFolder must be provided")
        return self

    @property
    def tracking_interval_ms(self) -> int:
        return int(self.tracking_interval_minutes * 60 * 1000)

    @property
    def interval_hours(self) -> float:
        return self.tracking_interval_minutes / 60

    @classmethod
    def load(cls, config_file: Path) -> "TrackerConfig":
        """Load and validate a JSON config file.

        Args:
            config_file: Path to the config file

        Returns:
            TrackerConfig object

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config file {config_file}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {config_file}: {e}") from e


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are prefixed with WORKTRACK_ (e.g., WORKTRACK_DATA_DIR).
    File locations left unset resolve under ``data_dir``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path = Field(default=Path.home() / ".worktrack")
    config_file: Optional[Path] = None
    state_file: Optional[Path] = None
    activity_log_file: Optional[Path] = None

    # Processing Settings
    max_concurrency: int = Field(default=4, ge=1)
    tick_timeout_seconds: float = Field(default=120, gt=0)

    # Logging
    log_level: str = "INFO"

    @property
    def resolved_config_file(self) -> Path:
        return self.config_file or self.data_dir / "config.json"

    @property
    def resolved_state_file(self) -> Path:
        return self.state_file or self.data_dir / "repo_activity_state.json"

    @property
    def resolved_activity_log_file(self) -> Path:
        return self.activity_log_file or self.data_dir / "activity_log.csv"
