"""Classification and cleanup models"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional

from git_worktree_keeper.models.worktree import Worktree


class Classification(Enum):
    """Status of a worktree, derived fresh on every listing."""
    ACTIVE = "active"
    AGING = "aging"  # Informational only, never a cleanup candidate by itself
    STALE = "stale"
    MERGED = "merged"
    CLOSED = "closed"
    CLOSED_WITH_OPEN_WORK = "closed_with_open_work"
    NO_CHANGES_FROM_DEFAULT = "no_changes_from_default"

    @property
    def is_cleanup_reason(self) -> bool:
        """True for statuses that put a worktree in the cleanup plan on their own."""
        return self in CLEANUP_CLASSIFICATIONS


CLEANUP_CLASSIFICATIONS = frozenset({
    Classification.MERGED,
    Classification.CLOSED,
    Classification.CLOSED_WITH_OPEN_WORK,
    Classification.NO_CHANGES_FROM_DEFAULT,
})


@dataclass
class ClassificationResult:
    """Outcome of classifying one worktree."""
    worktree: Worktree
    classification: Classification
    reason: str  # Human readable, e.g. "closed #42"
    reference: Optional[str] = None  # Issue/PR identifier behind the decision
    warning: Optional[str] = None
    provider_error: Optional[str] = None  # Set when a tracker could not answer


@dataclass
class CleanupCandidate:
    """A worktree proposed for removal."""
    worktree: Worktree
    classification: Classification
    reason: str
    warning: Optional[str] = None

    @property
    def candidate_id(self) -> str:
        """Identifier callers hand back to confirm this candidate."""
        return self.worktree.path


@dataclass
class RemovalResult:
    """Result of removing one confirmed candidate."""
    candidate: CleanupCandidate
    removed: bool
    branch_deleted: bool = False
    error: Optional[str] = None
