"""Infer time spent on tasks from activity in local git repositories."""

__version__ = "0.1.0"
