"""Shared constants for git-worktree-keeper."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("name", "Worktree", 30),
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("age", "Age", 10),
    ColumnDefinition("unpushed", "Unpushed", 8),
    ColumnDefinition("issue", "Issue", 12),
    ColumnDefinition("status", "Status", 24),
]

# Topic prefix for generated and issue-derived branch names
BRANCH_PREFIX = "work/"

# Section in git config holding repository-scoped settings
CONFIG_SECTION = "auto-worktree"

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

NULL_SHA = "0000000000000000000000000000000000000000"

# Status display names
STATUS_DISPLAY = {
    "active": "active",
    "aging": "aging",
    "stale": "stale",
    "merged": "merged",
    "closed": "closed",
    "closed_with_open_work": "closed (unpushed work)",
    "no_changes_from_default": "no changes",
}

# CLI colors (Rich color names)
CLI_COLORS = {
    "active": "green",
    "aging": "yellow",
    "stale": "red",
    "merged": "magenta",
    "closed": "magenta",
    "closed_with_open_work": "yellow",
    "no_changes_from_default": "bright_black",
}

# GitHub keywords that close an issue from a pull request ("Fixes #42")
CLOSING_KEYWORDS = r"close[sd]?|fix(?:e[sd])?|resolve[sd]?"
