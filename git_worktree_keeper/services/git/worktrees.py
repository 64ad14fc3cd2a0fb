"""Worktree operations service for git-worktree-keeper."""

import os
import shutil
from typing import List, Optional

from git_worktree_keeper.exceptions import (
    BranchCollisionError,
    BranchNotFoundError,
    GitOperationError,
    PathCollisionError,
    RemovalFailedError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import Worktree, WorktreeEntry
from git_worktree_keeper.providers.issue_ref import extract_issue_reference
from git_worktree_keeper.services.git.executor import CommandExecutor
from git_worktree_keeper.services.git.operations import GitOperations

logger = get_logger(__name__)

# Directory depth searched for file timestamps when a worktree has no commits
MTIME_SEARCH_DEPTH = 3


def parse_worktree_porcelain(output: str) -> List[WorktreeEntry]:
    """Parse ``git worktree list --porcelain`` output.

    Format (records separated by blank lines)::

        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>     (or "detached")
        locked [reason]              (optional)
        prunable [reason]            (optional)

    The first record is always the primary checkout.
    """
    entries: List[WorktreeEntry] = []
    current: Optional[WorktreeEntry] = None

    for raw_line in output.splitlines():
        line = raw_line.rstrip("\r")

        if not line.strip():
            if current is not None:
                entries.append(current)
                current = None
            continue

        key, _, value = line.partition(" ")
        if key == "worktree":
            if current is not None:
                entries.append(current)
            current = WorktreeEntry(path=value, is_main=not entries)
            continue

        if current is None:
            # Attribute line without a worktree header
            continue

        if key == "HEAD":
            current.head_commit = value.strip()
        elif key == "branch":
            ref = value.strip()
            current.branch_name = ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ""
        elif key == "detached":
            current.branch_name = ""
        elif key == "bare":
            current.is_bare = True
        elif key == "locked":
            current.is_locked = True
        elif key == "prunable":
            current.is_prunable = True

    # Handle last entry if no trailing blank line
    if current is not None:
        entries.append(current)

    return entries


def latest_file_mtime(path: str, max_depth: int = MTIME_SEARCH_DEPTH) -> Optional[float]:
    """Newest modification time of files under ``path``, ignoring ``.git``."""
    root_depth = path.rstrip(os.sep).count(os.sep)
    latest: Optional[float] = None

    for dirpath, dirnames, filenames in os.walk(path):
        dirnames[:] = [d for d in dirnames if d != ".git"]
        if dirpath.count(os.sep) - root_depth >= max_depth - 1:
            dirnames[:] = []
        for filename in filenames:
            if filename == ".git":
                continue
            try:
                mtime = os.stat(os.path.join(dirpath, filename)).st_mtime
            except OSError:
                continue
            if latest is None or mtime > latest:
                latest = mtime

    if latest is None:
        try:
            latest = os.stat(path).st_mtime
        except OSError:
            return None
    return latest


def _topmost_missing_ancestor(directory: str) -> Optional[str]:
    """Highest directory on the way to ``directory`` that does not exist yet."""
    missing = None
    while directory and not os.path.isdir(directory):
        missing = directory
        parent = os.path.dirname(directory)
        if parent == directory:
            break
        directory = parent
    return missing


class WorktreeService:
    """Service for listing, creating and removing git worktrees."""

    def __init__(self, executor: CommandExecutor, git_operations: Optional[GitOperations] = None):
        """Initialize the worktree service.

        Args:
            executor: Command executor bound to the repository
            git_operations: Branch helpers (created from the executor if omitted)
        """
        self.executor = executor
        self.git_operations = git_operations or GitOperations(executor)

    def list_entries(self) -> List[WorktreeEntry]:
        """Return every registered worktree record, primary checkout included."""
        output = self.executor.execute(["worktree", "list", "--porcelain"])
        entries = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(entries)} worktree records")
        return entries

    def list(self, tracker_kind: str = "", include_orphaned: bool = False) -> List[Worktree]:
        """List linked worktrees with their metadata.

        Args:
            tracker_kind: Configured issue tracker, used to type numeric/key issue ids
            include_orphaned: Also return registrations whose directory is gone

        Returns:
            Worktrees excluding the primary checkout
        """
        worktrees = []
        for entry in self.list_entries():
            if entry.is_main or entry.is_bare:
                continue

            if not os.path.isdir(entry.path):
                if include_orphaned:
                    worktrees.append(self._orphaned(entry, tracker_kind))
                else:
                    logger.debug(f"Skipping orphaned worktree {entry.path}")
                continue

            worktrees.append(self.build_worktree(entry, tracker_kind))

        return worktrees

    def get_by_branch(self, branch_name: str) -> Optional[WorktreeEntry]:
        """Return the worktree record that has ``branch_name`` checked out, if any."""
        for entry in self.list_entries():
            if entry.branch_name == branch_name:
                return entry
        return None

    def build_worktree(self, entry: WorktreeEntry, tracker_kind: str = "") -> Worktree:
        """Compute metadata for one worktree record."""
        return Worktree(
            path=entry.path,
            branch_name=entry.branch_name,
            head_commit=entry.head_commit,
            last_activity_time=self.get_last_activity_time(entry.path),
            unpushed_count=self.get_unpushed_count(entry.path, entry.branch_name),
            linked_issue=extract_issue_reference(entry.branch_name, tracker_kind),
        )

    @staticmethod
    def _orphaned(entry: WorktreeEntry, tracker_kind: str) -> Worktree:
        return Worktree(
            path=entry.path,
            branch_name=entry.branch_name,
            head_commit=entry.head_commit,
            last_activity_time=None,
            linked_issue=extract_issue_reference(entry.branch_name, tracker_kind),
            is_orphaned=True,
        )

    def get_last_activity_time(self, worktree_path: str) -> Optional[float]:
        """Timestamp of the newest commit, or of the newest file if there are no commits."""
        output, error = self.executor.try_execute(["log", "-1", "--format=%ct"], worktree_path)
        if error is None and output.strip().isdigit():
            return float(output.strip())

        logger.debug(f"No commit timestamp for {worktree_path}, using file times")
        return latest_file_mtime(worktree_path)

    def get_upstream(self, worktree_path: str) -> Optional[str]:
        """Return the upstream ref of the checked out branch, None when unset."""
        output, error = self.executor.try_execute(
            ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"], worktree_path
        )
        if error is not None or not output.strip():
            return None
        return output.strip()

    def get_unpushed_count(self, worktree_path: str, branch_name: str = "") -> int:
        """Count commits that exist only locally.

        With an upstream this is the number of commits reachable from HEAD but
        not from the upstream. Without one, every commit not present on any
        remote counts. Detached worktrees and empty histories give 0.
        """
        if not branch_name:
            return 0

        if self.get_upstream(worktree_path):
            args = ["rev-list", "--count", "@{u}..HEAD"]
        else:
            args = ["rev-list", "--count", "HEAD", "--not", "--remotes"]

        output, error = self.executor.try_execute(args, worktree_path)
        if error is not None:
            # An unborn branch has no HEAD to count from
            logger.debug(f"Could not count unpushed commits in {worktree_path}: {error}")
            return 0
        try:
            return int(output.strip() or 0)
        except ValueError:
            logger.debug(f"Unexpected rev-list output in {worktree_path}: {output!r}")
            return 0

    def create(self, path: str, branch_name: str, base_branch: Optional[str] = None) -> Worktree:
        """Create a worktree at ``path`` for ``branch_name``.

        Without ``base_branch`` the branch must already exist and is checked
        out as is. With ``base_branch`` a new branch is cut from it.

        Raises:
            BranchCollisionError: the branch already has a worktree, or exists when a new one is requested
            PathCollisionError: ``path`` already exists
            BranchNotFoundError: existing-branch mode with a missing branch
            GitOperationError: git failed to add the worktree
        """
        existing = self.get_by_branch(branch_name)
        if existing is not None:
            raise BranchCollisionError(branch_name, existing.path)

        if os.path.lexists(path):
            raise PathCollisionError(path)

        branch_exists = self.git_operations.branch_exists(branch_name)
        if base_branch is None:
            if not branch_exists:
                raise BranchNotFoundError(branch_name)
            args = ["worktree", "add", path, branch_name]
        else:
            if branch_exists:
                raise BranchCollisionError(branch_name)
            args = ["worktree", "add", "-b", branch_name, path, base_branch]

        parent = os.path.dirname(os.path.abspath(path))
        created_root = _topmost_missing_ancestor(parent)
        if created_root:
            os.makedirs(parent)

        try:
            self.executor.execute(args)
        except GitOperationError:
            if created_root:
                shutil.rmtree(created_root, ignore_errors=True)
            raise
        logger.info(f"Created worktree for {branch_name} at {path}")

        entry = self.get_by_branch(branch_name)
        if entry is None:
            entry = WorktreeEntry(path=path, branch_name=branch_name)
        return self.build_worktree(entry)

    def remove(self, path: str, delete_branch: bool = False) -> bool:
        """Force remove the worktree at ``path``.

        Args:
            path: Worktree directory
            delete_branch: Also delete its branch when no other worktree uses it

        Returns:
            True if the branch was deleted as well

        Raises:
            RemovalFailedError: git could not remove the worktree
        """
        branch_name = ""
        if delete_branch:
            for entry in self.list_entries():
                if os.path.normpath(entry.path) == os.path.normpath(path):
                    branch_name = entry.branch_name
                    break

        try:
            self.executor.execute(["worktree", "remove", "--force", path])
        except GitOperationError as e:
            logger.error(f"Failed to remove worktree at {path}: {e}")
            raise RemovalFailedError(path, e.stderr or str(e))
        logger.info(f"Removed worktree at {path}")

        if delete_branch and branch_name:
            return self.delete_branch_if_unreferenced(branch_name)
        return False

    def delete_branch_if_unreferenced(self, branch_name: str) -> bool:
        """Delete a local branch unless another worktree still has it checked out.

        Returns:
            True if the branch was deleted
        """
        if not branch_name or not self.git_operations.branch_exists(branch_name):
            return False
        if self.get_by_branch(branch_name) is not None:
            logger.info(f"Keeping branch {branch_name}: still checked out in another worktree")
            return False
        if branch_name == self.git_operations.get_default_branch():
            logger.warning(f"Refusing to delete default branch {branch_name}")
            return False
        self.git_operations.delete_branch(branch_name)
        return True

    def prune(self) -> int:
        """Drop registrations of worktrees whose directory is gone.

        Returns:
            Number of registrations pruned
        """
        before = len(self.list_entries())
        self.executor.execute(["worktree", "prune"])
        after = len(self.list_entries())
        pruned = max(0, before - after)
        if pruned:
            logger.info(f"Pruned {pruned} orphaned worktree(s)")
        return pruned
