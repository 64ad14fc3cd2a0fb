"""Branch and reference operations service"""

from typing import Optional

from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.services.git.executor import CommandExecutor

logger = get_logger(__name__)

DEFAULT_BRANCH_CANDIDATES = ("main", "master")
REMOTE_NAME = "origin"


class GitOperations:
    """Service for branch and reference queries used around worktrees."""

    def __init__(self, executor: CommandExecutor):
        """Initialize the service.

        Args:
            executor: Command executor bound to the repository
        """
        self.executor = executor
        self.remote_name = REMOTE_NAME

    def ref_exists(self, ref: str) -> bool:
        """Check if a fully qualified reference exists."""
        _, error = self.executor.try_execute(["show-ref", "--verify", "--quiet", ref])
        return error is None

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists."""
        return self.ref_exists(f"refs/heads/{branch_name}")

    def rev_parse(self, ref: str, working_dir: Optional[str] = None) -> Optional[str]:
        """Resolve a reference to a commit sha, or None if it does not resolve."""
        output, error = self.executor.try_execute(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], working_dir
        )
        if error is not None or not output:
            return None
        return output.strip()

    def get_default_branch(self) -> Optional[str]:
        """Detect the repository's default branch.

        Tries the remote HEAD symbolic ref first, then local main/master, then
        the remote tracking main/master.
        """
        output, error = self.executor.try_execute(
            ["symbolic-ref", f"refs/remotes/{self.remote_name}/HEAD"]
        )
        prefix = f"refs/remotes/{self.remote_name}/"
        if error is None and output.startswith(prefix):
            default_branch = output[len(prefix):].strip()
            if default_branch:
                logger.debug(f"Default branch from {self.remote_name}/HEAD: {default_branch}")
                return default_branch

        for candidate in DEFAULT_BRANCH_CANDIDATES:
            if self.branch_exists(candidate):
                return candidate

        for candidate in DEFAULT_BRANCH_CANDIDATES:
            if self.ref_exists(f"refs/remotes/{self.remote_name}/{candidate}"):
                return candidate

        logger.debug("Could not detect default branch")
        return None

    def get_default_branch_head(self, default_branch: Optional[str] = None) -> Optional[str]:
        """Return the commit sha the default branch points at."""
        branch = default_branch or self.get_default_branch()
        if not branch:
            return None
        head = self.rev_parse(branch)
        if head is None:
            head = self.rev_parse(f"{self.remote_name}/{branch}")
        return head

    def delete_branch(self, branch_name: str) -> None:
        """Force delete a local branch.

        Raises:
            GitOperationError: git refused to delete the branch
        """
        self.executor.execute(["branch", "-D", branch_name])
        logger.info(f"Deleted branch {branch_name}")

    def get_remote_url(self) -> Optional[str]:
        """Return the fetch URL of the origin remote, if configured."""
        try:
            url = self.executor.execute(["config", "--get", f"remote.{self.remote_name}.url"])
        except GitOperationError:
            return None
        return url.strip() or None

    def get_git_common_dir(self, working_dir: Optional[str] = None) -> Optional[str]:
        """Return ``git rev-parse --git-common-dir`` as an absolute path."""
        output, error = self.executor.try_execute(
            ["rev-parse", "--path-format=absolute", "--git-common-dir"], working_dir
        )
        if error is not None or not output:
            return None
        return output.strip()

    def get_config_value(self, key: str) -> Optional[str]:
        """Read a single git config value, None when unset."""
        output, error = self.executor.try_execute(["config", "--get", key])
        if error is not None:
            return None
        return output.strip() or None
