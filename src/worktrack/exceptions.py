"""Exceptions raised by worktrack."""


class WorktrackError(Exception):
    """Base class for worktrack errors."""


class ConfigError(WorktrackError):
    """The tracker configuration is missing or invalid."""
