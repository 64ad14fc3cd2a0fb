"""Data models for git-worktree-keeper."""

from .worktree import Worktree, WorktreeEntry, IssueReference, LockFile
from .classification import (
    Classification,
    ClassificationResult,
    CleanupCandidate,
    RemovalResult,
)

__all__ = [
    "Worktree",
    "WorktreeEntry",
    "IssueReference",
    "LockFile",
    "Classification",
    "ClassificationResult",
    "CleanupCandidate",
    "RemovalResult",
]
