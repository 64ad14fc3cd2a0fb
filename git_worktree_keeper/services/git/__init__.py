"""Git-related services for git-worktree-keeper."""

from .executor import CommandExecutor
from .hooks import HookRunner
from .locks import LockInspector
from .names import BranchNamer
from .operations import GitOperations
from .worktrees import WorktreeService

__all__ = [
    "CommandExecutor",
    "HookRunner",
    "LockInspector",
    "BranchNamer",
    "GitOperations",
    "WorktreeService",
]
