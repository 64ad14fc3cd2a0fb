"""Core functionality for git-worktree-keeper"""

import os
import time
from typing import Collection, List, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import LockInspectionError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.classification import ClassificationResult, CleanupCandidate, RemovalResult
from git_worktree_keeper.models.worktree import LockFile, Worktree
from git_worktree_keeper.providers import (
    PullRequestTracker,
    TicketTracker,
    create_issue_tracker,
    create_pull_request_tracker,
    issue_tracker_kind,
)
from git_worktree_keeper.services.classification_service import (
    ClassificationContext,
    ClassificationService,
)
from git_worktree_keeper.services.cleanup_service import CleanupService
from git_worktree_keeper.services.git.executor import CommandExecutor
from git_worktree_keeper.services.git.hooks import HookRunner
from git_worktree_keeper.services.git.locks import LockInspector
from git_worktree_keeper.services.git.names import BranchNamer, sanitize
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.services.git.worktrees import WorktreeService

logger = get_logger(__name__)

_UNSET = object()


class WorktreeKeeper:
    """Main class for managing the worktrees of one repository."""

    def __init__(
        self,
        repo_path: str,
        config: Union[Config, dict, None] = None,
        issue_tracker=_UNSET,
        pr_tracker=_UNSET,
        executor: Optional[CommandExecutor] = None,
        namer: Optional[BranchNamer] = None,
    ):
        """Initialize WorktreeKeeper.

        Args:
            repo_path: Any directory inside the repository
            config: Configuration dict or Config object
            issue_tracker: Tracker to use instead of the configured one (None disables)
            pr_tracker: Pull request tracker to use instead of the configured one (None disables)
            executor: Command executor (built from config if omitted)
            namer: Random branch name generator

        Raises:
            NotARepositoryError: ``repo_path`` is not inside a git repository
        """
        if config is None:
            config = Config()
        elif isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config

        self.lock_inspector = LockInspector()
        self.executor = executor or CommandExecutor(
            repo_path,
            attempts=config.lock_retry_attempts,
            retry_delay=config.lock_retry_delay,
            lock_inspector=self.lock_inspector,
        )
        self.repo_path = self.executor.execute(["rev-parse", "--show-toplevel"], repo_path).strip()
        self.executor.repo_path = self.repo_path

        self.git_operations = GitOperations(self.executor)
        self.worktree_service = WorktreeService(self.executor, self.git_operations)
        self.namer = namer or BranchNamer()
        self.hook_runner = HookRunner(
            self.git_operations,
            custom_hooks=config.custom_hooks,
            enabled=config.run_hooks,
            fail_on_error=config.fail_on_hook_error,
        )

        self.remote_url = self.git_operations.get_remote_url()
        self.tracker_kind = issue_tracker_kind(config, self.remote_url)
        self._issue_tracker = issue_tracker
        self._pr_tracker = pr_tracker

    @property
    def issue_tracker(self) -> Optional[TicketTracker]:
        if self._issue_tracker is _UNSET:
            self._issue_tracker = create_issue_tracker(self.config, self.repo_path, self.remote_url)
        return self._issue_tracker

    @property
    def pr_tracker(self) -> Optional[PullRequestTracker]:
        if self._pr_tracker is _UNSET:
            self._pr_tracker = create_pull_request_tracker(self.config, self.repo_path, self.remote_url)
        return self._pr_tracker

    @property
    def main_worktree_path(self) -> str:
        """Path of the primary checkout."""
        for entry in self.worktree_service.list_entries():
            if entry.is_main:
                return entry.path
        return self.repo_path

    @property
    def worktree_base(self) -> str:
        """Directory new worktrees are created in."""
        if self.config.worktree_base:
            return os.path.abspath(os.path.expanduser(self.config.worktree_base))
        repo_name = os.path.basename(os.path.normpath(self.main_worktree_path))
        return os.path.join(os.path.expanduser("~"), "worktrees", repo_name)

    def worktree_path_for(self, branch_name: str) -> str:
        """Location of the worktree for ``branch_name`` under the worktree base."""
        return os.path.join(self.worktree_base, sanitize(branch_name))

    def list_worktrees(self, include_orphaned: bool = False) -> List[Worktree]:
        return self.worktree_service.list(self.tracker_kind, include_orphaned=include_orphaned)

    def classification_context(self, now: Optional[float] = None) -> ClassificationContext:
        """Gather the repository-wide facts classification needs."""
        default_branch = self.git_operations.get_default_branch()
        return ClassificationContext(
            issue_tracker=self.issue_tracker,
            pr_tracker=self.pr_tracker,
            default_branch=default_branch,
            default_branch_head=self.git_operations.get_default_branch_head(default_branch),
            now=time.time() if now is None else now,
            aging_days=self.config.aging_days,
            stale_days=self.config.stale_days,
        )

    def classify_worktrees(self, worktrees: Optional[List[Worktree]] = None) -> List[ClassificationResult]:
        """Classify every worktree (listed fresh unless given)."""
        if worktrees is None:
            worktrees = self.list_worktrees()
        classifier = ClassificationService(self.classification_context())
        return classifier.classify_all(worktrees)

    def plan_cleanup(self, current_path: Optional[str] = None) -> List[CleanupCandidate]:
        """Propose worktrees for removal, never the one containing ``current_path``."""
        classifier = ClassificationService(self.classification_context())
        cleanup_service = CleanupService(self.worktree_service, classifier)
        return cleanup_service.plan(self.list_worktrees(), current_path=current_path)

    def cleanup(self, candidates: List[CleanupCandidate], confirmed_ids: Collection[str]) -> List[RemovalResult]:
        """Remove the confirmed candidates of a plan."""
        return CleanupService(self.worktree_service).execute(candidates, confirmed_ids, dry_run=self.config.dry_run)

    def _name_taken(self, branch_name: str) -> bool:
        return (
            self.git_operations.branch_exists(branch_name)
            or self.worktree_service.get_by_branch(branch_name) is not None
            or os.path.lexists(self.worktree_path_for(branch_name))
        )

    def create_worktree(
        self,
        branch_name: Optional[str] = None,
        base_branch: Optional[str] = None,
        path: Optional[str] = None,
    ) -> Worktree:
        """Create a worktree and run the post-creation hooks.

        Without ``branch_name`` a unique random ``work/...`` branch is cut from
        ``base_branch`` (default branch if omitted). Without ``base_branch`` an
        existing branch is checked out as is; with one, the branch must be new.

        Raises:
            NameGenerationExhaustedError: no free random name was found
            BranchCollisionError, PathCollisionError: the branch or path is taken
            HookError: a hook failed and fail_on_hook_error is set
        """
        if branch_name is None:
            branch_name = self.namer.generate_unique_name(
                self._name_taken, max_attempts=self.config.name_attempts
            )

        if base_branch is None and self.git_operations.branch_exists(branch_name):
            base = None
        else:
            base = base_branch or self.git_operations.get_default_branch() or "HEAD"

        target = path or self.worktree_path_for(branch_name)
        if self.config.dry_run:
            logger.info(f"Would create worktree for {branch_name} at {target}")
            return Worktree(path=target, branch_name=branch_name, head_commit="", last_activity_time=None)

        worktree = self.worktree_service.create(target, branch_name, base)
        self.hook_runner.run_worktree_hooks(worktree.path)
        return worktree

    def create_worktree_for_issue(self, issue_id: str, title: str, base_branch: Optional[str] = None) -> Worktree:
        """Create a worktree on ``work/<id>-<title>``."""
        return self.create_worktree(self.namer.branch_name_for_issue(issue_id, title), base_branch)

    def remove_worktree(self, path: str, delete_branch: bool = True) -> bool:
        """Force remove one worktree; returns True if its branch was deleted too."""
        return self.worktree_service.remove(path, delete_branch=delete_branch)

    def prune(self) -> int:
        """Forget worktrees whose directory is gone."""
        if self.config.dry_run:
            orphaned = [w for w in self.list_worktrees(include_orphaned=True) if w.is_orphaned]
            logger.info(f"Would prune {len(orphaned)} orphaned worktree(s)")
            return len(orphaned)
        return self.worktree_service.prune()

    def scan_locks(self) -> List[LockFile]:
        return self.lock_inspector.scan(self.main_worktree_path)

    def remove_stale_locks(self) -> List[LockFile]:
        """Delete lock files whose owner is dead; returns the ones removed."""
        removed = []
        for lock_file in LockInspector.stale_locks(self.scan_locks()):
            if self.config.dry_run:
                logger.info(f"Would remove stale lock file {lock_file.path}")
                continue
            try:
                self.lock_inspector.remove_stale(lock_file)
            except LockInspectionError as e:
                logger.warning(str(e))
                continue
            removed.append(lock_file)
        return removed

