"""Service for classifying worktrees from local and tracker facts"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from git_worktree_keeper.constants import SECONDS_PER_DAY
from git_worktree_keeper.exceptions import ProviderError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.classification import Classification, ClassificationResult
from git_worktree_keeper.models.worktree import Worktree
from git_worktree_keeper.providers.base import PullRequestTracker, TicketTracker
from git_worktree_keeper.providers.issue_ref import extract_merge_request_number

logger = get_logger(__name__)


@dataclass
class ClassificationContext:
    """Everything classification depends on besides the worktree itself.

    Passed explicitly so a classification is a pure function of its inputs.
    """

    issue_tracker: Optional[TicketTracker] = None
    pr_tracker: Optional[PullRequestTracker] = None
    default_branch: Optional[str] = None
    default_branch_head: Optional[str] = None
    now: float = field(default_factory=time.time)
    aging_days: float = 1
    stale_days: float = 4


class ClassificationService:
    """Derives a Classification for each worktree.

    Evidence is weighed strongest first: a merged issue or pull request, then
    a closed issue, then a head identical to the default branch, and finally
    age. Any tracker failure makes the worktree ACTIVE, since a worktree
    should never be proposed for removal on incomplete information.
    """

    def __init__(self, context: ClassificationContext):
        self.context = context

    def classify_all(self, worktrees: List[Worktree]) -> List[ClassificationResult]:
        if self.context.issue_tracker is not None:
            self.context.issue_tracker.clear_cache()
        return [self.classify(worktree) for worktree in worktrees]

    def classify(self, worktree: Worktree) -> ClassificationResult:
        """Classify one worktree."""
        logger.debug(f"Classifying {worktree.path}")

        try:
            result = self._classify_from_trackers(worktree)
        except ProviderError as e:
            logger.debug(f"Tracker unavailable for {worktree.display_ref}, treating as active: {e}")
            return ClassificationResult(
                worktree=worktree,
                classification=Classification.ACTIVE,
                reason="active (tracker unavailable)",
                provider_error=str(e),
            )
        if result is not None:
            return result

        if self._matches_default_branch(worktree):
            target = self.context.default_branch or "default branch"
            return ClassificationResult(
                worktree=worktree,
                classification=Classification.NO_CHANGES_FROM_DEFAULT,
                reason=f"no changes from {target}",
            )

        return self._classify_by_age(worktree)

    def _classify_from_trackers(self, worktree: Worktree) -> Optional[ClassificationResult]:
        """Issue and pull request checks; None when they decide nothing."""
        issue = worktree.linked_issue
        tracker = self.context.issue_tracker
        closed = False
        open_pull_request = False

        if issue is not None and tracker is not None and issue.kind == tracker.name:
            if tracker.is_issue_merged_or_completed(issue.issue_id):
                logger.debug(f"Issue {issue} is merged or completed")
                return ClassificationResult(
                    worktree=worktree,
                    classification=Classification.MERGED,
                    reason=f"merged {issue}",
                    reference=str(issue),
                )
            if tracker.is_issue_closed(issue.issue_id):
                closed = True
                open_pull_request = tracker.has_open_linked_pull_request(issue.issue_id)
                logger.debug(f"Issue {issue} is closed (open linked PR: {open_pull_request})")

        merged_ref = self._merged_pull_request(worktree)
        if merged_ref is not None:
            return ClassificationResult(
                worktree=worktree,
                classification=Classification.MERGED,
                reason=f"PR merged ({merged_ref})",
                reference=merged_ref,
            )

        if not closed:
            return None

        unpushed = worktree.unpushed_count
        if unpushed > 0:
            warning = f"{unpushed} unpushed commit(s) will be lost"
            if open_pull_request:
                warning += "; an open pull request still references the issue"
            return ClassificationResult(
                worktree=worktree,
                classification=Classification.CLOSED_WITH_OPEN_WORK,
                reason=f"closed {issue} with unpushed work",
                reference=str(issue),
                warning=warning,
            )
        if not open_pull_request:
            return ClassificationResult(
                worktree=worktree,
                classification=Classification.CLOSED,
                reason=f"closed {issue}",
                reference=str(issue),
            )

        # Closed issue, but integration work is still in flight
        return None

    def _merged_pull_request(self, worktree: Worktree) -> Optional[str]:
        """Reference of a merged pull/merge request for this worktree, if any."""
        tracker = self.context.pr_tracker
        if tracker is None:
            return None

        if tracker.name == "gitlab":
            mr_number = extract_merge_request_number(worktree.path)
            if mr_number and tracker.is_pull_request_merged(mr_number):
                return f"!{mr_number}"

        if worktree.branch_name and tracker.is_pull_request_merged(worktree.branch_name):
            return worktree.branch_name
        return None

    def _matches_default_branch(self, worktree: Worktree) -> bool:
        # The default branch itself is never "unchanged from" itself
        if worktree.branch_name and worktree.branch_name == self.context.default_branch:
            return False
        head = self.context.default_branch_head
        return bool(head) and worktree.head_commit == head and worktree.unpushed_count == 0

    def _classify_by_age(self, worktree: Worktree) -> ClassificationResult:
        age = worktree.age_seconds(self.context.now)
        if age is None:
            return ClassificationResult(
                worktree=worktree,
                classification=Classification.ACTIVE,
                reason="active (no activity recorded)",
            )

        age_days = age / SECONDS_PER_DAY
        if age_days >= self.context.stale_days:
            classification, reason = Classification.STALE, f"stale ({int(age_days)}d old)"
        elif age_days >= self.context.aging_days:
            classification, reason = Classification.AGING, f"aging ({int(age_days)}d old)"
        else:
            classification, reason = Classification.ACTIVE, "active"

        logger.debug(f"{worktree.display_ref} is {classification.value} (age: {age_days:.1f} days)")
        return ClassificationResult(worktree=worktree, classification=classification, reason=reason)
