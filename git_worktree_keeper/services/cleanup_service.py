"""Service for planning and performing worktree cleanup"""

import os
from typing import Collection, List, Optional

from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.classification import (
    Classification,
    ClassificationResult,
    CleanupCandidate,
    RemovalResult,
)
from git_worktree_keeper.models.worktree import Worktree
from git_worktree_keeper.services.classification_service import ClassificationService
from git_worktree_keeper.services.git.worktrees import WorktreeService

logger = get_logger(__name__)

# Plan order: strongest evidence first
PLAN_ORDER = [
    Classification.MERGED,
    Classification.CLOSED,
    Classification.CLOSED_WITH_OPEN_WORK,
    Classification.NO_CHANGES_FROM_DEFAULT,
    Classification.STALE,
]


def is_within(path: str, directory: str) -> bool:
    """True if ``path`` is ``directory`` or lies inside it."""
    path = os.path.realpath(path)
    directory = os.path.realpath(directory)
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)


class CleanupService:
    """Turns classifications into a removal plan and carries out confirmed removals."""

    def __init__(
        self,
        worktree_service: WorktreeService,
        classification_service: Optional[ClassificationService] = None,
    ):
        self.worktree_service = worktree_service
        self.classification_service = classification_service

    def plan(self, worktrees: List[Worktree], current_path: Optional[str] = None) -> List[CleanupCandidate]:
        """Classify ``worktrees`` and return the ones worth removing.

        The worktree containing ``current_path`` is never proposed.
        """
        if self.classification_service is None:
            raise ValueError("planning needs a classification service")

        candidates = []
        for worktree in worktrees:
            if current_path and is_within(current_path, worktree.path):
                logger.debug(f"Skipping current worktree {worktree.path}")
                continue
            candidates.append(worktree)
        return self.plan_from_results(self.classification_service.classify_all(candidates))

    @staticmethod
    def plan_from_results(results: List[ClassificationResult]) -> List[CleanupCandidate]:
        """Build the plan from existing classifications.

        Every merged, closed or unchanged worktree is proposed. Of the stale
        ones only the single oldest is, so an age threshold alone never
        removes many worktrees at once.
        """
        selected = [r for r in results if r.classification.is_cleanup_reason]

        stale = [
            r for r in results
            if r.classification == Classification.STALE and r.worktree.last_activity_time is not None
        ]
        if stale:
            oldest = min(stale, key=lambda r: r.worktree.last_activity_time)
            selected.append(oldest)
            if len(stale) > 1:
                logger.info(
                    f"{len(stale)} stale worktrees found; proposing only the oldest ({oldest.worktree.path})"
                )

        selected.sort(key=lambda r: PLAN_ORDER.index(r.classification))
        return [
            CleanupCandidate(
                worktree=r.worktree,
                classification=r.classification,
                reason=r.reason,
                warning=r.warning,
            )
            for r in selected
        ]

    def execute(
        self,
        candidates: List[CleanupCandidate],
        confirmed_ids: Collection[str],
        dry_run: bool = False,
    ) -> List[RemovalResult]:
        """Remove every confirmed candidate and its branch.

        A failure on one candidate is recorded in its result and does not stop
        the others.
        """
        confirmed = set(confirmed_ids)
        results = []

        for candidate in candidates:
            if candidate.candidate_id not in confirmed:
                continue

            if dry_run:
                logger.info(f"Would remove worktree {candidate.worktree.path} ({candidate.reason})")
                results.append(RemovalResult(candidate=candidate, removed=False))
                continue

            results.append(self._remove_candidate(candidate))

        removed = sum(1 for r in results if r.removed)
        logger.info(f"Removed {removed} of {len(results)} confirmed worktree(s)")
        return results

    def _remove_candidate(self, candidate: CleanupCandidate) -> RemovalResult:
        worktree = candidate.worktree
        try:
            self.worktree_service.remove(worktree.path)
        except GitOperationError as e:
            logger.error(f"Failed to remove {worktree.path}: {e}")
            return RemovalResult(candidate=candidate, removed=False, error=str(e))

        try:
            branch_deleted = self.worktree_service.delete_branch_if_unreferenced(worktree.branch_name)
        except GitOperationError as e:
            logger.error(f"Removed {worktree.path} but could not delete branch {worktree.branch_name}: {e}")
            return RemovalResult(candidate=candidate, removed=True, error=str(e))

        return RemovalResult(candidate=candidate, removed=True, branch_deleted=branch_deleted)
