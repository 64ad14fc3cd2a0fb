"""Custom exceptions for git-worktree-keeper"""

from typing import Optional, Sequence


class WorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""
    pass


class GitOperationError(WorktreeKeeperError):
    """Exception raised for errors in Git operations."""

    def __init__(
        self,
        operation: str,
        target: Optional[str] = None,
        message: Optional[str] = None,
        *,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
        status: Optional[int] = None,
        working_dir: Optional[str] = None,
    ):
        self.operation = operation
        self.target = target
        self.message = message
        self.command = list(command) if command else []
        self.stderr = stderr
        self.status = status
        self.working_dir = working_dir

        error_msg = f"Git operation '{operation}' failed"
        if target:
            error_msg += f" for '{target}'"
        if working_dir:
            error_msg += f" in {working_dir}"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class LockContentionError(GitOperationError):
    """Git kept failing on repository lock files after all retries."""


class NotARepositoryError(GitOperationError):
    """Exception raised when a path is not inside a git repository."""

    def __init__(self, path: str):
        self.path = path
        super().__init__("resolve_repository", path, "Not a git repository")


class BranchCollisionError(GitOperationError):
    """Exception raised when a branch is already checked out in a worktree or already exists."""

    def __init__(self, branch: str, existing_path: Optional[str] = None):
        self.branch = branch
        self.existing_path = existing_path
        if existing_path:
            message = f"Branch already has a worktree at {existing_path}"
        else:
            message = "Branch already exists"
        super().__init__("create_worktree", branch, message)


class PathCollisionError(GitOperationError):
    """Exception raised when the worktree target directory already exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__("create_worktree", path, "Path already exists")


class BranchNotFoundError(GitOperationError):
    """Exception raised when a branch is not found."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__("find_branch", branch, "Branch not found")


class RemovalFailedError(GitOperationError):
    """Exception raised when a worktree could not be removed."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__("remove_worktree", path, message)


class LockInspectionError(WorktreeKeeperError):
    """Exception raised when the repository state directory cannot be read."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Could not inspect lock files under {path}: {message}")


class NameGenerationExhaustedError(WorktreeKeeperError):
    """Exception raised when no unique random branch name could be found."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate unique name after {attempts} attempts")


class ProviderError(WorktreeKeeperError):
    """Base exception for issue/PR tracker failures."""


class ProviderUnavailableError(ProviderError):
    """Exception raised when a tracker cannot answer a query."""

    def __init__(self, provider: str, operation: str, message: Optional[str] = None):
        self.provider = provider
        self.operation = operation
        self.message = message

        error_msg = f"{provider} operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class HookError(WorktreeKeeperError):
    """Exception raised when a post-creation hook fails."""

    def __init__(self, hook: str, message: str):
        self.hook = hook
        super().__init__(f"Hook {hook} failed: {message}")


class ConfigurationError(WorktreeKeeperError, ValueError):
    """Exception raised for invalid configuration values."""
