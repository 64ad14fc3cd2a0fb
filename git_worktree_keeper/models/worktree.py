"""Worktree data models."""

import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class IssueReference:
    """Issue identity extracted from a branch name."""

    issue_id: str
    kind: str  # github, gitlab, jira, linear

    def __str__(self) -> str:
        if self.issue_id.isdigit():
            return f"#{self.issue_id}"
        return self.issue_id


@dataclass
class WorktreeEntry:
    """One record of ``git worktree list --porcelain``."""

    path: str
    head_commit: str = ""
    branch_name: str = ""  # Empty when detached
    is_main: bool = False  # First record is the primary checkout
    is_bare: bool = False
    is_locked: bool = False
    is_prunable: bool = False


@dataclass
class Worktree:
    """A linked worktree together with the facts classification needs."""

    path: str
    branch_name: str
    head_commit: str
    last_activity_time: Optional[float]  # Unix timestamp, None if unknown
    unpushed_count: int = 0
    linked_issue: Optional[IssueReference] = None
    is_orphaned: bool = False  # Directory missing?

    @property
    def is_detached(self) -> bool:
        return not self.branch_name

    @property
    def display_ref(self) -> str:
        """Branch name, or abbreviated commit when detached."""
        return self.branch_name or self.head_commit[:7]

    def age_seconds(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds since last activity, or None when no timestamp exists."""
        if self.last_activity_time is None:
            return None
        now = time.time() if now is None else now
        return max(0.0, now - self.last_activity_time)

    def __str__(self) -> str:
        status = "orphaned" if self.is_orphaned else "present"
        return f"{self.display_ref} @ {self.path} [{status}]"


@dataclass
class LockFile:
    """A git lock artifact found under the repository state directory."""

    path: str
    age: float  # Seconds since last modification
    owner_process_id: int  # -1 when the file holds no usable pid
    owner_alive: bool

    @property
    def is_stale(self) -> bool:
        return not self.owner_alive

    def __str__(self) -> str:
        status = "active" if self.owner_alive else "stale"
        return f"{self.path} (age: {int(round(self.age))}s, pid: {self.owner_process_id}, {status})"
