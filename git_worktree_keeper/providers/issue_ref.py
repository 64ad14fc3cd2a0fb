"""Extract linked issue identifiers from branch names."""

import re
from typing import Optional

from git_worktree_keeper.models.worktree import IssueReference

# PROJ-123 style keys (Jira, Linear)
TICKET_KEY_PATTERN = re.compile(r"[A-Z][A-Z0-9]+-[0-9]+")
# First run of digits not glued to a preceding digit: work/123-fix, issue-42
ISSUE_NUMBER_PATTERN = re.compile(r"(?:^|[^0-9])([0-9]+)")
# GitLab merge request review worktrees: .../mr-17
MERGE_REQUEST_PATH_PATTERN = re.compile(r"mr-([0-9]+)")


def extract_issue_reference(branch_name: str, tracker_kind: str = "") -> Optional[IssueReference]:
    """Find the issue a branch belongs to.

    A ticket key takes precedence over a bare number. Both key-based trackers
    share one pattern, as do both numeric ones, so the configured tracker kind
    decides which of the pair the identifier belongs to.

    Args:
        branch_name: Branch to inspect; empty for detached worktrees
        tracker_kind: Configured issue tracker (github, gitlab, jira, linear or "")

    Returns:
        IssueReference, or None when the branch names no issue
    """
    if not branch_name:
        return None

    key_match = TICKET_KEY_PATTERN.search(branch_name)
    if key_match:
        kind = "linear" if tracker_kind == "linear" else "jira"
        return IssueReference(key_match.group(0), kind)

    number_match = ISSUE_NUMBER_PATTERN.search(branch_name)
    if number_match:
        kind = "gitlab" if tracker_kind == "gitlab" else "github"
        return IssueReference(number_match.group(1), kind)

    return None


def extract_merge_request_number(path: str) -> Optional[str]:
    """Return the merge request number encoded in a review worktree path."""
    match = MERGE_REQUEST_PATH_PATTERN.search(path)
    return match.group(1) if match else None
