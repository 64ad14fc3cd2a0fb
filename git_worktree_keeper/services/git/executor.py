"""Git command execution with lock contention handling"""

import os
import time
from typing import Callable, Optional, Sequence, Tuple

import git

from git_worktree_keeper.exceptions import (
    GitOperationError,
    LockContentionError,
    LockInspectionError,
    NotARepositoryError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.services.git.locks import LockInspector, format_lock_warning

logger = get_logger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0


def is_lock_error(message: str) -> bool:
    """Check whether git error output points at a lock file.

    Matches messages naming a ``*.lock`` artifact (index.lock, HEAD.lock,
    config.lock, packed-refs.lock...) and the "unable to create" / "file exists"
    forms git prints when the artifact lives in the ``.git`` directory.
    """
    if not message:
        return False
    text = message.lower()
    if ".lock" in text:
        return True
    return ("unable to create" in text or "file exists" in text) and ".git" in text


class CommandExecutor:
    """Runs git commands, retrying when another process holds a repository lock.

    Lock contention is retried with a fixed delay up to ``attempts`` total
    tries; any other failure is raised immediately. On the first lock failure
    of a call the repository is scanned for lock files and a warning listing
    them is logged.
    """

    def __init__(
        self,
        repo_path: str,
        attempts: int = DEFAULT_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        lock_inspector: Optional[LockInspector] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the executor.

        Args:
            repo_path: Directory commands run in when no working_dir is given
            attempts: Total tries for a command failing on a lock file
            retry_delay: Seconds to wait between tries
            lock_inspector: Inspector used for the contention diagnostic
            sleep: Sleep function (replaced in tests)
        """
        self.repo_path = repo_path
        self.attempts = max(1, attempts)
        self.retry_delay = retry_delay
        self.lock_inspector = lock_inspector or LockInspector()
        self.sleep = sleep

    def _run(self, args: Sequence[str], working_dir: str) -> str:
        """Run one git invocation. Kept separate so tests can replace it."""
        return git.Git(working_dir).execute(["git", *args])

    def execute(self, args: Sequence[str], working_dir: Optional[str] = None) -> str:
        """Run ``git <args>`` and return its stripped stdout.

        Raises:
            NotARepositoryError: the directory is not inside a repository
            LockContentionError: git still failed on a lock file after all tries
            GitOperationError: any other failure
        """
        cwd = working_dir or self.repo_path
        operation = args[0] if args else "git"
        diagnostic_shown = False
        last_error: Optional[git.exc.GitCommandError] = None

        for attempt in range(1, self.attempts + 1):
            try:
                output = self._run(args, cwd)
                if attempt > 1:
                    logger.info(f"git {' '.join(args)} succeeded on attempt {attempt}")
                return output
            except git.exc.GitCommandNotFound as e:
                raise GitOperationError(
                    operation, message=f"git executable not found: {e}", command=["git", *args]
                )
            except git.exc.GitCommandError as e:
                last_error = e
                stderr = _stderr_of(e)

                if "not a git repository" in stderr.lower():
                    raise NotARepositoryError(cwd)

                if not is_lock_error(stderr or str(e)):
                    break

                if not diagnostic_shown:
                    self._report_locks(cwd)
                    diagnostic_shown = True

                if attempt < self.attempts:
                    logger.debug(
                        f"git {' '.join(args)} hit a lock file (attempt {attempt}/{self.attempts}), "
                        f"retrying in {self.retry_delay}s"
                    )
                    self.sleep(self.retry_delay)
                    continue

                raise LockContentionError(
                    operation,
                    message=f"repository is locked after {self.attempts} attempts: {stderr}",
                    command=["git", *args],
                    stderr=stderr,
                    status=_status_of(e),
                    working_dir=working_dir,
                )

        assert last_error is not None
        stderr = _stderr_of(last_error)
        status = _status_of(last_error)
        if stderr:
            message = f"git {' '.join(args)} failed (exit {status}): {stderr}"
        else:
            message = f"git {' '.join(args)} failed with exit code {status}"
        raise GitOperationError(
            operation,
            message=message,
            command=["git", *args],
            stderr=stderr,
            status=status,
            working_dir=working_dir,
        )

    def try_execute(
        self, args: Sequence[str], working_dir: Optional[str] = None
    ) -> Tuple[str, Optional[GitOperationError]]:
        """Run a git command and return ``(output, error)`` instead of raising."""
        try:
            return self.execute(args, working_dir), None
        except GitOperationError as e:
            return "", e

    def _report_locks(self, path: str) -> None:
        """Log every lock file in the repository with its age and owner."""
        try:
            lock_files = self.lock_inspector.scan(_repository_root(path))
        except (NotARepositoryError, LockInspectionError) as e:
            logger.debug(f"Could not scan for lock files in {path}: {e}")
            return

        warning = format_lock_warning(lock_files)
        if warning:
            logger.warning(warning)


def _repository_root(path: str) -> str:
    """Walk up from ``path`` to the directory holding ``.git``."""
    current = os.path.abspath(path)
    while True:
        if os.path.lexists(os.path.join(current, ".git")):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return os.path.abspath(path)
        current = parent


def _stderr_of(error: git.exc.GitCommandError) -> str:
    stderr = getattr(error, "stderr", "") or ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    stderr = stderr.strip()
    # GitPython wraps stderr as "\n  stderr: '...'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip()
        if len(stderr) >= 2 and stderr[0] == stderr[-1] == "'":
            stderr = stderr[1:-1]
    return stderr.strip()


def _status_of(error: git.exc.GitCommandError):
    return getattr(error, "status", "unknown")
