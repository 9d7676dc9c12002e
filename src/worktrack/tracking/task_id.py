"""Task id extraction from branch names."""

import re
from typing import Optional

from worktrack.models import DEFAULT_TASK_ID_PATTERN


def extract_task_id(branch_name: str, pattern: Optional[str] = None) -> Optional[str]:
    """Return the first case-insensitive match of pattern, upper-cased.

    Args:
        branch_name: Branch name, e.g. "feature/dfo-42-fix-login"
        pattern: Regular expression (defaults to DFO-\\d+)

    Returns:
        Task id such as "DFO-42", or None if the branch name has none
    """
    match = re.search(pattern or DEFAULT_TASK_ID_PATTERN, branch_name, re.IGNORECASE)
    return match.group(0).upper() if match else None


def build_task_url(task_id: str, base_url: Optional[str]) -> Optional[str]:
    """Join a task id onto the task tracker base URL, if one is configured."""
    if not base_url or not task_id:
        return None
    return f"{base_url.rstrip('/')}/{task_id}"
