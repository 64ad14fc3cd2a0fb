"""Lock file inspection for git repositories.

Git guards its index, refs and config with ``*.lock`` files while a mutating
command runs. When another process holds one, or a crashed process left one
behind, every other git command touching that resource fails. This module finds
those files and works out whether their owner is still running.
"""

import os
import re
import sys
import time
from typing import Callable, List, Optional

from git_worktree_keeper.exceptions import LockInspectionError, NotARepositoryError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import LockFile

logger = get_logger(__name__)

LOCK_SUFFIX = ".lock"

_PID_TOKEN = re.compile(r"^\d+$")


def resolve_git_dir(repo_root: str) -> str:
    """Return the real git state directory for ``repo_root``.

    Follows the ``.git`` file indirection used by linked worktrees
    (``gitdir: /repo/.git/worktrees/name``) and then the ``commondir`` pointer
    back to the shared repository directory, where index/ref locks of the
    main repository live.

    Raises:
        NotARepositoryError: ``repo_root`` has no ``.git`` entry
        LockInspectionError: ``.git`` exists but could not be read
    """
    dot_git = os.path.join(repo_root, ".git")
    try:
        is_dir = os.path.isdir(dot_git)
        exists = is_dir or os.path.lexists(dot_git)
    except OSError as e:
        raise LockInspectionError(repo_root, str(e))

    if not exists:
        raise NotARepositoryError(repo_root)

    if is_dir:
        return dot_git

    try:
        with open(dot_git, "r", encoding="utf-8") as handle:
            content = handle.read()
    except OSError as e:
        raise LockInspectionError(repo_root, f"failed to read .git file: {e}")

    if not content.startswith("gitdir:"):
        raise NotARepositoryError(repo_root)

    git_dir = content[len("gitdir:"):].strip()
    if not os.path.isabs(git_dir):
        git_dir = os.path.normpath(os.path.join(repo_root, git_dir))

    commondir_file = os.path.join(git_dir, "commondir")
    try:
        with open(commondir_file, "r", encoding="utf-8") as handle:
            common_dir = handle.read().strip()
    except FileNotFoundError:
        return git_dir
    except OSError as e:
        logger.debug(f"Could not read {commondir_file}: {e}")
        return git_dir

    if not os.path.isabs(common_dir):
        common_dir = os.path.normpath(os.path.join(git_dir, common_dir))
    return common_dir


def read_lock_owner_pid(path: str) -> int:
    """Return the first whitespace separated integer in a lock file, or -1."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            content = handle.read(4096)
    except OSError:
        return -1

    for token in content.split():
        if _PID_TOKEN.match(token):
            return int(token)
    return -1


def is_process_alive(pid: int) -> bool:
    """Probe whether ``pid`` names a running process.

    Only a definite "no such process" answer counts as dead. Where the probe
    cannot give an answer (no pid recorded, a platform without signal 0, a pid
    owned by another user) the owner is assumed alive, so nothing is ever
    treated as stale without proof.
    """
    if pid <= 0:
        return True

    # os.kill(pid, 0) on Windows is not an existence probe
    if sys.platform.startswith("win"):
        return True

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    except OverflowError:
        # Larger than any pid the OS can hold
        return False
    except OSError as e:
        logger.debug(f"Liveness probe for pid {pid} inconclusive: {e}")
        return True
    return True


class LockInspector:
    """Finds git lock files and reports whether their owners are alive."""

    def __init__(
        self,
        liveness_probe: Callable[[int], bool] = is_process_alive,
        clock: Callable[[], float] = time.time,
    ):
        self.liveness_probe = liveness_probe
        self.clock = clock

    def scan(self, repo_root: str) -> List[LockFile]:
        """Collect every lock file under the repository state directory.

        Unreadable entries are skipped rather than aborting the scan.
        """
        git_dir = resolve_git_dir(repo_root)
        now = self.clock()
        lock_files = []

        def _on_error(error: OSError):
            logger.debug(f"Skipping unreadable path during lock scan: {error}")

        for dirpath, _dirnames, filenames in os.walk(git_dir, onerror=_on_error):
            for filename in filenames:
                if not filename.endswith(LOCK_SUFFIX):
                    continue
                path = os.path.join(dirpath, filename)
                try:
                    mtime = os.stat(path).st_mtime
                except OSError as e:
                    # Lock released while we were looking
                    logger.debug(f"Could not stat {path}: {e}")
                    continue

                pid = read_lock_owner_pid(path)
                lock_files.append(
                    LockFile(
                        path=path,
                        age=max(0.0, now - mtime),
                        owner_process_id=pid,
                        owner_alive=self.liveness_probe(pid),
                    )
                )

        logger.debug(f"Found {len(lock_files)} lock file(s) under {git_dir}")
        return lock_files

    @staticmethod
    def stale_locks(lock_files: List[LockFile]) -> List[LockFile]:
        """Return only the lock files whose owner is not running."""
        return [lf for lf in lock_files if lf.is_stale]

    def remove_stale(self, lock_file: LockFile) -> bool:
        """Delete a lock file whose owner is proven dead.

        Returns:
            True if the file was removed or was already gone

        Raises:
            LockInspectionError: the owner is alive or the file could not be removed
        """
        if lock_file.owner_alive:
            raise LockInspectionError(
                lock_file.path,
                f"process {lock_file.owner_process_id} is still alive",
            )
        try:
            os.remove(lock_file.path)
        except FileNotFoundError:
            return True
        except OSError as e:
            raise LockInspectionError(lock_file.path, f"failed to remove lock file: {e}")
        logger.info(f"Removed stale lock file {lock_file.path}")
        return True


def format_lock_warning(lock_files: List[LockFile]) -> Optional[str]:
    """Render a diagnostic describing the lock files found, or None if there are none."""
    if not lock_files:
        return None

    stale = LockInspector.stale_locks(lock_files)
    lines = [f"Found {len(lock_files)} lock file(s) ({len(stale)} stale):"]
    for lock_file in lock_files:
        lines.append(f"  • {lock_file}")
    if stale:
        lines.append("Stale lock files may be blocking git. Remove them with "
                     "'git-worktree-keeper doctor --remove-stale-locks'.")
    else:
        lines.append("Git operations appear to be in progress in another process.")
    return "\n".join(lines)
