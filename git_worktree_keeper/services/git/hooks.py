"""Post-creation git hook discovery and execution"""

import os
import subprocess
from typing import Callable, List, Optional, Sequence

from git_worktree_keeper.constants import NULL_SHA
from git_worktree_keeper.exceptions import HookError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.services.git.operations import GitOperations

logger = get_logger(__name__)

# Appended to PATH so hooks installed by Homebrew or system package managers resolve
EXTRA_PATH_DIRS = [
    "/opt/homebrew/bin",
    "/opt/homebrew/sbin",
    "/usr/local/bin",
    "/usr/bin",
    "/bin",
    "/usr/sbin",
    "/sbin",
]

WINDOWS_HOOK_SUFFIXES = (".bat", ".cmd", ".exe", ".ps1")


def is_executable_file(path: str) -> bool:
    """Check that ``path`` is a regular file with an execute bit set."""
    return os.path.isfile(path) and os.access(path, os.X_OK)


def hook_environment(base: Optional[dict] = None) -> dict:
    """Copy of the environment with common binary directories appended to PATH."""
    env = dict(os.environ if base is None else base)
    extra = os.pathsep.join(EXTRA_PATH_DIRS)
    current = env.get("PATH")
    env["PATH"] = f"{current}{os.pathsep}{extra}" if current else extra
    return env


class HookRunner:
    """Runs post-checkout, post-worktree and custom hooks for a new worktree.

    Hook directories are searched in order: ``core.hooksPath``, ``.husky``,
    then ``<git-common-dir>/hooks``. The first executable match wins. A
    missing hook is not an error; a failing one is logged as a warning unless
    ``fail_on_error`` is set, in which case HookError is raised.
    """

    def __init__(
        self,
        git_operations: GitOperations,
        custom_hooks: Sequence[str] = (),
        enabled: bool = True,
        fail_on_error: bool = False,
        is_executable: Callable[[str], bool] = is_executable_file,
    ):
        self.git_operations = git_operations
        self.custom_hooks = list(custom_hooks)
        self.enabled = enabled
        self.fail_on_error = fail_on_error
        self.is_executable = is_executable

    @property
    def repo_path(self) -> str:
        return self.git_operations.executor.repo_path

    def hook_directories(self) -> List[str]:
        """Directories that may hold hooks, highest priority first."""
        directories = []

        hooks_path = self.git_operations.get_config_value("core.hooksPath")
        if hooks_path:
            hooks_path = os.path.expanduser(hooks_path)
            if not os.path.isabs(hooks_path):
                hooks_path = os.path.join(self.repo_path, hooks_path)
            directories.append(hooks_path)

        husky = os.path.join(self.repo_path, ".husky")
        if os.path.isdir(husky):
            directories.append(husky)

        common_dir = self.git_operations.get_git_common_dir(self.repo_path)
        if common_dir:
            if not os.path.isabs(common_dir):
                common_dir = os.path.join(self.repo_path, common_dir)
            directories.append(os.path.join(common_dir, "hooks"))

        return directories

    def find_hook(self, hook_name: str) -> Optional[str]:
        """Return the path of the first executable hook called ``hook_name``."""
        variants = [hook_name]
        if os.name == "nt":
            variants.extend(hook_name + suffix for suffix in WINDOWS_HOOK_SUFFIXES)

        for directory in self.hook_directories():
            for variant in variants:
                candidate = os.path.join(directory, variant)
                if self.is_executable(candidate):
                    return candidate
        return None

    def run_hook(self, hook_name: str, args: Sequence[str], worktree_path: str) -> bool:
        """Run one hook inside ``worktree_path``.

        Returns:
            True if the hook existed and ran

        Raises:
            HookError: the hook failed to start or exited non-zero
        """
        hook_path = self.find_hook(hook_name)
        if hook_path is None:
            logger.debug(f"No {hook_name} hook found")
            return False

        logger.info(f"Running {hook_name} hook: {hook_path}")
        try:
            result = subprocess.run(
                [hook_path, *args],
                cwd=worktree_path,
                env=hook_environment(),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise HookError(hook_name, f"failed to execute hook: {e}")

        if result.stdout:
            logger.info(f"[{hook_name}] {result.stdout.rstrip()}")
        if result.returncode != 0:
            detail = result.stderr.strip()
            message = f"hook exited with code {result.returncode}"
            if detail:
                message += f": {detail}"
            raise HookError(hook_name, message)
        return True

    def run_worktree_hooks(self, worktree_path: str) -> List[str]:
        """Run every post-creation hook for a freshly created worktree.

        Returns:
            Warnings for hooks that failed (empty when all succeeded or none exist)
        """
        if not self.enabled:
            logger.debug("Hooks disabled")
            return []

        head = self.git_operations.rev_parse("HEAD", worktree_path) or NULL_SHA
        hooks = [("post-checkout", [NULL_SHA, head, "1"]), ("post-worktree", [])]
        hooks.extend((name, []) for name in self.custom_hooks)

        warnings = []
        for hook_name, args in hooks:
            try:
                self.run_hook(hook_name, args, worktree_path)
            except HookError as e:
                if self.fail_on_error:
                    raise
                logger.warning(str(e))
                warnings.append(str(e))
        return warnings
