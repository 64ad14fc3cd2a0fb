"""Shared formatting utilities for git-worktree-keeper."""

import os
from typing import Optional

from git_worktree_keeper.constants import SECONDS_PER_DAY, SECONDS_PER_HOUR, STATUS_DISPLAY
from git_worktree_keeper.models.classification import Classification


def format_age(age_seconds: Optional[float]) -> str:
    """
    Format an age as hours under a day and days otherwise.

    Args:
        age_seconds: Seconds since last activity, None when unknown

    Returns:
        "5h ago", "3d ago" or "unknown"
    """
    if age_seconds is None:
        return "unknown"
    if age_seconds < SECONDS_PER_DAY:
        return f"{int(age_seconds // SECONDS_PER_HOUR)}h ago"
    return f"{int(age_seconds // SECONDS_PER_DAY)}d ago"


def format_status(classification: Classification) -> str:
    """Display name of a classification."""
    return STATUS_DISPLAY.get(classification.value, classification.value)


def format_unpushed(count: int) -> str:
    """Unpushed commit count with an arrow, blank when there are none."""
    return f"↑{count}" if count else ""


def format_worktree_name(path: str, is_current: bool = False) -> str:
    """Last path component, marked with * for the current worktree."""
    name = os.path.basename(os.path.normpath(path))
    return f"* {name}" if is_current else name

